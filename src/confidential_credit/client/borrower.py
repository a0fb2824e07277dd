"""
Borrower-side orchestration.

Coordinates the full application flow:
1. Encrypt financial data locally
2. Submit it to the oracle
3. Have the oracle compute an encrypted score
4. Match the score against lending pools and collect encrypted offers
5. Optionally decrypt the score and offers (only the key holder can)
"""
from typing import Optional, Tuple

from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.shared.protocol import (
    CreditProfile,
    Identity,
    LoanQuote,
    OpaqueValue,
    ScoreReport,
)
from confidential_credit.shared.utils import Timer, plaintext_score


class BorrowerClient:
    """
    Client-side application coordinator.

    Handles the borrower lifecycle; plaintext never leaves this object.
    """

    def __init__(self, codec: OpaqueCodec, oracle, identity: Identity):
        """
        Initialize borrower client.

        Args:
            codec: Codec sharing the oracle's backend key material
            oracle: CreditOracle (or anything exposing its methods)
            identity: The borrower's identity
        """
        self.codec = codec
        self.oracle = oracle
        self.identity = identity

    def submit_financial_data(
        self,
        income: int,
        assets: int,
        debts: int,
        payment_history: int,
        credit_utilization: Optional[int] = None,
    ) -> CreditProfile:
        """Encrypt plaintext attributes and submit them as the borrower's profile."""
        encrypted_utilization = (
            self.codec.encrypt(credit_utilization) if credit_utilization is not None else None
        )
        return self.oracle.update_financial_data(
            self.identity,
            self.codec.encrypt(income),
            self.codec.encrypt(assets),
            self.codec.encrypt(debts),
            self.codec.encrypt(payment_history),
            encrypted_utilization,
        )

    def compute_score(self) -> OpaqueValue:
        return self.oracle.compute_credit_score(self.identity)

    def find_matches(self, score: OpaqueValue):
        return self.oracle.find_loan_matches(score)

    def loan_offer(self, score: OpaqueValue, pool_id: int) -> LoanQuote:
        pool = self.oracle.get_pool(pool_id)
        return LoanQuote(
            pool_id=pool_id,
            pool_name=pool.name,
            interest_rate_bps=pool.interest_rate_bps,
            amount=self.oracle.get_optimal_loan_amount(score, pool_id),
        )

    def reveal(self, value: OpaqueValue) -> int:
        """Decrypt locally. Requires a codec holding the private key."""
        return self.codec.decrypt(value)

    def apply(
        self,
        income: int,
        assets: int,
        debts: int,
        payment_history: int,
        credit_utilization: Optional[int] = None,
        reveal: bool = False,
        verbose: bool = False,
    ) -> Tuple[ScoreReport, dict]:
        """
        Run the whole application flow.

        The oracle never sees the inputs, the score or the loan amounts.

        Args:
            income: Annual income
            assets: Total assets
            debts: Total debts
            payment_history: Payment history score (0-100)
            credit_utilization: Utilization percentage (optional)
            reveal: Decrypt the score and offered amounts locally
            verbose: Print timing information

        Returns:
            Tuple of (score report, timing info)
        """
        timing = {}

        # Step 1: Encrypt and submit
        if verbose:
            print("Step 1: Encrypting and submitting financial data...")
        with Timer() as t:
            self.submit_financial_data(
                income, assets, debts, payment_history, credit_utilization
            )
        timing["submit_ms"] = t.elapsed_ms

        # Step 2: Oracle computes encrypted score
        if verbose:
            print("Step 2: Computing encrypted score...")
        with Timer() as t:
            score = self.compute_score()
        timing["score_ms"] = t.elapsed_ms

        # Step 3: Match against pools and collect offers
        if verbose:
            print("Step 3: Matching lending pools...")
        with Timer() as t:
            matches = self.find_matches(score)
            quotes = [self.loan_offer(score, pool_id) for pool_id in matches]
        timing["match_ms"] = t.elapsed_ms

        report = ScoreReport(score=score, matches=matches, quotes=quotes)

        # Step 4: Decrypt locally
        if reveal:
            with Timer() as t:
                report.revealed_score = self.reveal(score)
                for quote in quotes:
                    quote.revealed_amount = self.reveal(quote.amount)
            timing["reveal_ms"] = t.elapsed_ms

        timing["total_ms"] = sum(timing.values())

        if verbose:
            print(f"\nMatched {len(matches)} pool(s) in {timing['total_ms']:.2f}ms")

        return report, timing

    def verify_score(
        self,
        score: OpaqueValue,
        income: int,
        assets: int,
        payment_history: int,
        credit_utilization: int = 0,
    ) -> dict:
        """
        Verify the encrypted score against the plaintext computation.

        For testing/validation only.

        Returns:
            Dict with the decrypted and expected scores and whether they match
        """
        decrypted = self.reveal(score)
        expected = plaintext_score(income, assets, payment_history, credit_utilization)
        return {
            "decrypted": decrypted,
            "expected": expected,
            "match": decrypted == expected,
        }
