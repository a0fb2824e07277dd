"""Tests for the homomorphic arithmetic engine."""
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from confidential_credit.client.backends import MAX_PLAINTEXT
from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.server.audit import InMemoryAuditSink
from confidential_credit.server.engine import HomomorphicEngine
from confidential_credit.server.gate import AuthorizationGate
from confidential_credit.shared.errors import (
    MalformedCiphertext,
    PlaintextOutOfRange,
    UnauthorizedCaller,
)
from confidential_credit.shared.protocol import Capability, OpaqueValue

from conftest import MALLORY, ORACLE, OWNER

# Operand ranges keep every exact result below 2**256.
halves = st.integers(min_value=0, max_value=MAX_PLAINTEXT // 2)
thirds = st.integers(min_value=0, max_value=MAX_PLAINTEXT // 3)
full_range = st.integers(min_value=0, max_value=MAX_PLAINTEXT)
near_max = st.integers(min_value=MAX_PLAINTEXT - 2**64, max_value=MAX_PLAINTEXT)
factors = st.integers(min_value=0, max_value=2**128)
large_scalars = st.integers(min_value=0, max_value=2**127)

LAWS = settings(max_examples=25, deadline=None)


@pytest.fixture(scope="module", params=["simulated", "paillier"])
def arithmetic(request):
    """Codec and engine per backend, shared across hypothesis examples."""
    if request.param == "paillier":
        pytest.importorskip("lightphe")
        codec = OpaqueCodec.paillier(key_size=512)
    else:
        codec = OpaqueCodec.simulated(seed="engine-properties")
    gate = AuthorizationGate(OWNER)
    gate.grant(OWNER, ORACLE)
    return codec, HomomorphicEngine(codec, gate)


class TestAlgebraicLaws:
    """Decrypted results must match plaintext arithmetic exactly, on every backend."""

    @LAWS
    @given(x=halves, y=halves)
    def test_add(self, arithmetic, x, y):
        codec, engine = arithmetic
        result = engine.add(ORACLE, codec.encrypt(x), codec.encrypt(y))
        assert codec.decrypt(result) == x + y

    @LAWS
    @given(x=factors, k=large_scalars)
    def test_scalar_multiply(self, arithmetic, x, k):
        codec, engine = arithmetic
        result = engine.scalar_multiply(ORACLE, codec.encrypt(x), k)
        assert codec.decrypt(result) == x * k

    @LAWS
    @given(x=full_range | near_max, y=full_range | near_max)
    def test_compare_at_least(self, arithmetic, x, y):
        codec, engine = arithmetic
        assert engine.compare_at_least(ORACLE, codec.encrypt(x), codec.encrypt(y)) == (x >= y)

    @LAWS
    @given(x=halves, y=halves)
    def test_add_commutative(self, arithmetic, x, y):
        codec, engine = arithmetic
        a, b = codec.encrypt(x), codec.encrypt(y)
        assert codec.decrypt(engine.add(ORACLE, a, b)) == codec.decrypt(engine.add(ORACLE, b, a))

    @LAWS
    @given(x=thirds, y=thirds, z=thirds)
    def test_add_associative(self, arithmetic, x, y, z):
        codec, engine = arithmetic
        a, b, c = codec.encrypt(x), codec.encrypt(y), codec.encrypt(z)
        left = engine.add(ORACLE, engine.add(ORACLE, a, b), c)
        right = engine.add(ORACLE, a, engine.add(ORACLE, b, c))
        assert codec.decrypt(left) == codec.decrypt(right) == x + y + z

    @LAWS
    @given(x=full_range)
    def test_results_keep_fixed_length(self, arithmetic, x):
        codec, engine = arithmetic
        a = codec.encrypt(x)
        assert len(engine.add(ORACLE, a, codec.encrypt(0))) == codec.ciphertext_size
        assert len(engine.scalar_multiply(ORACLE, a, 1)) == codec.ciphertext_size

    def test_compare_equal_values(self, arithmetic):
        """Equality counts as at-least in both directions."""
        codec, engine = arithmetic
        a, b = codec.encrypt(700), codec.encrypt(700)
        assert engine.compare_at_least(ORACLE, a, b)
        assert engine.compare_at_least(ORACLE, b, a)


class TestRangeBoundary:
    """Results at 2**256 or above are errors on every backend, never wrapped values."""

    def test_max_plaintext_survives(self, arithmetic):
        codec, engine = arithmetic
        top = codec.encrypt(MAX_PLAINTEXT)
        assert codec.decrypt(engine.add(ORACLE, top, codec.encrypt(0))) == MAX_PLAINTEXT
        assert codec.decrypt(engine.scalar_multiply(ORACLE, top, 1)) == MAX_PLAINTEXT
        assert engine.compare_at_least(ORACLE, top, codec.encrypt(MAX_PLAINTEXT - 1))

    def test_add_past_max(self, arithmetic):
        codec, engine = arithmetic
        with pytest.raises(PlaintextOutOfRange):
            codec.decrypt(engine.add(ORACLE, codec.encrypt(MAX_PLAINTEXT), codec.encrypt(1)))

    def test_multiply_past_max(self, arithmetic):
        codec, engine = arithmetic
        with pytest.raises(PlaintextOutOfRange):
            codec.decrypt(engine.scalar_multiply(ORACLE, codec.encrypt(2**255), 2))

    def test_huge_scalar(self, arithmetic):
        """A scalar large enough to wrap the Paillier modulus is rejected."""
        codec, engine = arithmetic
        with pytest.raises(PlaintextOutOfRange):
            codec.decrypt(engine.scalar_multiply(ORACLE, codec.encrypt(1), 2**600))

    def test_overflowed_value_never_compares(self, arithmetic):
        codec, engine = arithmetic
        with pytest.raises(PlaintextOutOfRange):
            big = engine.scalar_multiply(ORACLE, codec.encrypt(2**255), 3)
            engine.compare_at_least(ORACLE, big, codec.encrypt(2**255))


class TestAuthorization:
    """Every engine operation is gated."""

    def test_unauthorized_caller(self, engine, codec, audit_sink):
        """Unauthorized calls fail and leave no audit record."""
        a, b = codec.encrypt(1), codec.encrypt(2)

        with pytest.raises(UnauthorizedCaller):
            engine.add(MALLORY, a, b)
        with pytest.raises(UnauthorizedCaller):
            engine.scalar_multiply(MALLORY, a, 2)
        with pytest.raises(UnauthorizedCaller):
            engine.compare_at_least(MALLORY, a, b)
        with pytest.raises(UnauthorizedCaller):
            engine.decrypt(MALLORY, a)

        assert len(audit_sink) == 0

    def test_authorization_checked_before_validation(self, engine):
        """An unauthorized caller gets UnauthorizedCaller even with garbage input."""
        with pytest.raises(UnauthorizedCaller):
            engine.add(MALLORY, OpaqueValue(b"x"), OpaqueValue(b"y"))

    def test_owner_implicitly_authorized(self, engine, codec):
        result = engine.add(OWNER, codec.encrypt(1), codec.encrypt(2))
        assert codec.decrypt(result) == 3

    def test_granted_caller(self, engine, codec, gate):
        gate.grant(OWNER, MALLORY)
        assert engine.compare_at_least(MALLORY, codec.encrypt(5), codec.encrypt(4))

    def test_decrypt_requires_decrypt_grant(self, engine, codec, gate):
        """ENGINE alone is not enough to decrypt."""
        a = codec.encrypt(31337)
        with pytest.raises(UnauthorizedCaller, match="decrypt"):
            engine.decrypt(ORACLE, a)

        gate.grant(OWNER, ORACLE, Capability.DECRYPT)
        assert engine.decrypt(ORACLE, a) == 31337


class TestValidation:
    """Malformed operands are rejected."""

    def test_wrong_length(self, engine, codec):
        good = codec.encrypt(1)
        bad = OpaqueValue(good.blob[:10])
        with pytest.raises(MalformedCiphertext):
            engine.add(ORACLE, good, bad)
        with pytest.raises(MalformedCiphertext):
            engine.scalar_multiply(ORACLE, bad, 2)
        with pytest.raises(MalformedCiphertext):
            engine.compare_at_least(ORACLE, bad, good)

    def test_negative_scalar(self, engine, codec):
        with pytest.raises(PlaintextOutOfRange):
            engine.scalar_multiply(ORACLE, codec.encrypt(3), -2)

    def test_failed_call_not_audited(self, engine, codec, audit_sink):
        with pytest.raises(MalformedCiphertext):
            engine.add(ORACLE, codec.encrypt(1), OpaqueValue(b"\x00" * 3))
        assert len(audit_sink) == 0


class TestAudit:
    """Successful operations emit non-plaintext audit records."""

    def test_records_emitted(self, engine, codec, audit_sink, clock):
        a, b = codec.encrypt(10), codec.encrypt(20)
        total = engine.add(ORACLE, a, b)
        engine.scalar_multiply(ORACLE, a, 3)
        engine.compare_at_least(ORACLE, a, b)

        assert audit_sink.operations() == ["add", "scalar_multiply", "compare_at_least"]
        first = audit_sink.records[0]
        assert first.caller == ORACLE
        assert first.payload == total.blob
        assert first.timestamp == clock.now()
        # Comparison results are never attached
        assert audit_sink.records[2].payload is None

    def test_sink_failure_is_not_fatal(self, codec, gate):
        """A broken sink does not fail the operation."""

        class BrokenSink(InMemoryAuditSink):
            def record(self, record):
                raise RuntimeError("sink down")

        engine = HomomorphicEngine(codec, gate, BrokenSink())
        result = engine.add(OWNER, codec.encrypt(2), codec.encrypt(3))
        assert codec.decrypt(result) == 5
