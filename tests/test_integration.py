"""Integration tests for the full borrower flow."""
import pytest

from confidential_credit.client.borrower import BorrowerClient
from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.config import Settings
from confidential_credit.server.audit import InMemoryAuditSink
from confidential_credit.server.oracle import CreditOracle, seed_demo_pools
from confidential_credit.shared.errors import DecryptionUnavailable
from confidential_credit.shared.utils import (
    generate_random_profiles,
    plaintext_loan_amount,
    plaintext_matches,
    plaintext_score,
)

from conftest import ALICE

DEMO_THRESHOLDS = [
    {"min_score": 600, "max_loan": 10_000},
    {"min_score": 700, "max_loan": 25_000},
    {"min_score": 800, "max_loan": 50_000},
]


class TestBorrowerFlow:
    """Encrypt, submit, score, match and reveal."""

    def test_apply_with_reveal(self, oracle, codec):
        seed_demo_pools(oracle)
        borrower = BorrowerClient(codec, oracle, ALICE)

        # Low-income applicant: score lands between the demo thresholds
        report, timing = borrower.apply(
            income=0, assets=0, debts=5_000, payment_history=20, credit_utilization=1,
            reveal=True,
        )

        expected = plaintext_score(0, 0, 20, 1)
        assert expected == 720
        assert report.revealed_score == expected
        assert report.matches == [0, 1]
        assert [q.pool_name for q in report.quotes] == ["Conservative Pool", "Balanced Pool"]
        assert [q.revealed_amount for q in report.quotes] == [10_000, 25_000]

        for key in ("submit_ms", "score_ms", "match_ms", "reveal_ms", "total_ms"):
            assert key in timing
        assert timing["total_ms"] > 0

    def test_apply_without_reveal(self, oracle, codec):
        seed_demo_pools(oracle)
        borrower = BorrowerClient(codec, oracle, ALICE)
        report, timing = borrower.apply(50_000, 100_000, 20_000, 85, 30)

        assert report.revealed_score is None
        assert report.matches == [0, 1, 2]
        assert all(q.revealed_amount is None for q in report.quotes)
        assert "reveal_ms" not in timing

    def test_verify_score(self, oracle, codec):
        borrower = BorrowerClient(codec, oracle, ALICE)
        borrower.submit_financial_data(50_000, 100_000, 20_000, 85, 30)
        result = borrower.verify_score(borrower.compute_score(), 50_000, 100_000, 85, 30)
        assert result["match"]
        assert result["decrypted"] == 1_653_575

    def test_random_borrowers_match_plaintext(self, oracle, codec):
        """Opaque pipeline agrees with the plaintext oracle end to end."""
        seed_demo_pools(oracle)
        for i, p in enumerate(generate_random_profiles(10, seed=3)):
            # Shrink inputs so scores fall around the demo thresholds
            p = {k: v % 40 for k, v in p.items()}
            borrower = BorrowerClient(codec, oracle, f"b{i}")
            report, _ = borrower.apply(**p, reveal=True)

            score = plaintext_score(
                p["income"], p["assets"], p["payment_history"], p["credit_utilization"]
            )
            assert report.revealed_score == score
            assert report.matches == plaintext_matches(score, DEMO_THRESHOLDS)
            assert [q.revealed_amount for q in report.quotes] == [
                plaintext_loan_amount(score, DEMO_THRESHOLDS[j]["max_loan"])
                for j in report.matches
            ]


class TestOracleFromSettings:
    """Oracle construction from configuration."""

    def test_simulated_with_demo_pools(self):
        settings = Settings(
            BACKEND="simulated",
            SIMULATION_SEED="integration",
            OWNER_IDENTITY="root",
            ORACLE_IDENTITY="svc",
            SEED_DEMO_POOLS=True,
        )
        sink = InMemoryAuditSink()
        oracle = CreditOracle.from_settings(settings, audit_sink=sink)

        assert oracle.owner == "root"
        assert oracle.gate.is_authorized("svc")
        assert len(oracle.pools()) == 3
        assert sink.operations() == ["add_pool"] * 3

    def test_without_demo_pools(self):
        oracle = CreditOracle.from_settings(Settings(SEED_DEMO_POOLS=False))
        assert oracle.pools() == ()


class TestPaillierFlow:
    """Full flow over a real additively homomorphic scheme."""

    def test_apply(self):
        pytest.importorskip("lightphe")
        codec = OpaqueCodec.paillier(key_size=512)
        oracle = CreditOracle(codec, audit_sink=InMemoryAuditSink())
        seed_demo_pools(oracle)

        borrower = BorrowerClient(codec, oracle, ALICE)
        report, _ = borrower.apply(0, 0, 0, 20, 1, reveal=True)

        assert report.revealed_score == 720
        assert report.matches == [0, 1]
        assert [q.revealed_amount for q in report.quotes] == [10_000, 25_000]

    def test_borrower_without_private_key_cannot_reveal(self):
        pytest.importorskip("lightphe")
        from confidential_credit.client.backends import PaillierBackend

        codec = OpaqueCodec.paillier(key_size=512)
        public_codec = OpaqueCodec(PaillierBackend.from_public_key(codec.backend.public_key))
        oracle = CreditOracle(codec, audit_sink=InMemoryAuditSink())

        borrower = BorrowerClient(public_codec, oracle, ALICE)
        borrower.submit_financial_data(1, 2, 3, 4)
        with pytest.raises(DecryptionUnavailable):
            borrower.reveal(borrower.compute_score())
