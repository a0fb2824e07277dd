#!/usr/bin/env python3
"""
Confidential lending demo.

Walks one borrower through the whole flow against the three demo pools:
1. Borrower encrypts income, assets, debts, payment history, utilization
2. Oracle computes the weighted score over ciphertexts
3. Pools are matched and loan amounts derived, all still encrypted
4. Borrower decrypts the results locally and checks them against plaintext
"""
import sys
import argparse
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from confidential_credit.client.borrower import BorrowerClient
from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.log import configure_logging
from confidential_credit.server.audit import InMemoryAuditSink
from confidential_credit.server.oracle import CreditOracle, seed_demo_pools
from confidential_credit.shared.utils import (
    Timer,
    plaintext_loan_amount,
    plaintext_matches,
    plaintext_score,
)


def run_lending_demo(
    income: int,
    assets: int,
    debts: int,
    payment_history: int,
    credit_utilization: int,
    backend: str = "simulated",
    key_size: int = 1024,
    verbose: bool = True,
):
    """Run the borrower flow and print a breakdown."""
    print("=" * 70)
    print("Confidential Credit - Lending Demo")
    print("=" * 70)
    print(f"\nConfiguration:")
    print(f"  Backend:            {backend}")
    print(f"  Income:             {income:,}")
    print(f"  Assets:             {assets:,}")
    print(f"  Debts:              {debts:,}")
    print(f"  Payment history:    {payment_history}")
    print(f"  Utilization:        {credit_utilization}%")

    # =========================================================================
    # SETUP PHASE
    # =========================================================================
    print("\n" + "=" * 70)
    print("SETUP PHASE")
    print("=" * 70)

    print("\n[1] Initializing encryption backend...")
    with Timer() as t:
        if backend == "paillier":
            codec = OpaqueCodec.paillier(key_size=key_size)
        else:
            codec = OpaqueCodec.simulated(seed="demo")
    print(f"    Ready in {t.elapsed_ms:.0f}ms (ciphertext size: {codec.ciphertext_size} bytes)")

    print("\n[2] Deploying oracle and demo pools...")
    audit = InMemoryAuditSink()
    oracle = CreditOracle(codec, audit_sink=audit)
    with Timer() as t:
        pool_ids = seed_demo_pools(oracle)
    print(f"    Registered {len(pool_ids)} pools in {t.elapsed_ms:.0f}ms")
    for pool in oracle.pools():
        print(f"      #{pool.pool_id}: {pool.name} ({pool.interest_rate_bps / 100:.2f}% APR)")

    # =========================================================================
    # APPLICATION PHASE
    # =========================================================================
    print("\n" + "=" * 70)
    print("APPLICATION PHASE")
    print("=" * 70 + "\n")

    borrower = BorrowerClient(codec, oracle, identity="0xA11CE")
    report, timing = borrower.apply(
        income, assets, debts, payment_history, credit_utilization,
        reveal=True,
        verbose=verbose,
    )

    # =========================================================================
    # RESULTS
    # =========================================================================
    print("\n" + "=" * 70)
    print("RESULTS")
    print("=" * 70)

    print(f"\nCredit score: {report.revealed_score:,}")
    print(f"\nLoan offers ({len(report.quotes)}):")
    print("-" * 50)
    for quote in report.quotes:
        print(
            f"  {quote.pool_name:<20} {quote.revealed_amount:>10,} "
            f"at {quote.interest_rate_bps / 100:.2f}%"
        )
    if not report.quotes:
        print("  No pool accepts this score")

    # =========================================================================
    # VERIFICATION
    # =========================================================================
    print("\n" + "=" * 70)
    print("VERIFICATION")
    print("=" * 70)

    expected_score = plaintext_score(income, assets, payment_history, credit_utilization)
    demo_pools = [
        {"min_score": codec.decrypt(p.min_score), "max_loan": codec.decrypt(p.max_loan)}
        for p in oracle.pools()
    ]
    expected_matches = plaintext_matches(expected_score, demo_pools)
    expected_amounts = [
        plaintext_loan_amount(expected_score, demo_pools[i]["max_loan"])
        for i in expected_matches
    ]

    score_ok = report.revealed_score == expected_score
    matches_ok = report.matches == expected_matches
    amounts_ok = [q.revealed_amount for q in report.quotes] == expected_amounts

    print(f"\n  Score matches plaintext:    {'Yes' if score_ok else 'No'}")
    print(f"  Pool matches agree:         {'Yes' if matches_ok else 'No'}")
    print(f"  Loan amounts agree:         {'Yes' if amounts_ok else 'No'}")

    # =========================================================================
    # TIMING
    # =========================================================================
    print("\n" + "=" * 70)
    print("TIMING BREAKDOWN")
    print("=" * 70)
    print(f"\n  Encrypt + submit:          {timing['submit_ms']:8.2f}ms")
    print(f"  Encrypted scoring:         {timing['score_ms']:8.2f}ms")
    print(f"  Matching + offers:         {timing['match_ms']:8.2f}ms")
    print(f"  Local decryption:          {timing['reveal_ms']:8.2f}ms")
    print(f"  {'='*40}")
    print(f"  TOTAL:                     {timing['total_ms']:8.2f}ms")

    # =========================================================================
    # AUDIT TRAIL
    # =========================================================================
    print("\n" + "=" * 70)
    print("AUDIT TRAIL")
    print("=" * 70)
    operations = audit.operations()
    for op in sorted(set(operations)):
        print(f"  {op:<20} x{operations.count(op)}")
    print("\n  [x] Oracle never saw the financial inputs")
    print("  [x] Oracle never saw the score or loan amounts")
    print("  [x] Audit records carry no plaintext")

    return report, timing


def main():
    parser = argparse.ArgumentParser(
        description="Demo confidential credit scoring and loan matching"
    )
    parser.add_argument("--income", type=int, default=50_000, help="Annual income")
    parser.add_argument("--assets", type=int, default=100_000, help="Total assets")
    parser.add_argument("--debts", type=int, default=20_000, help="Total debts")
    parser.add_argument(
        "--payment-history",
        type=int,
        default=85,
        help="Payment history score (0-100)",
    )
    parser.add_argument(
        "--utilization",
        type=int,
        default=30,
        help="Credit utilization percentage",
    )
    parser.add_argument(
        "--backend",
        choices=["simulated", "paillier"],
        default="simulated",
        help="Encryption backend (paillier requires lightphe)",
    )
    parser.add_argument(
        "--key-size",
        type=int,
        default=1024,
        help="Paillier key size in bits",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for library output",
    )

    args = parser.parse_args()
    configure_logging(args.log_level)

    run_lending_demo(
        income=args.income,
        assets=args.assets,
        debts=args.debts,
        payment_history=args.payment_history,
        credit_utilization=args.utilization,
        backend=args.backend,
        key_size=args.key_size,
    )


if __name__ == "__main__":
    main()
