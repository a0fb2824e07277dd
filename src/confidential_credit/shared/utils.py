"""
Shared utility functions.
"""
import numpy as np
from typing import Dict, List, Optional
import time

# Integer weights applied by the scoring pipeline. Conceptually 35/30/20/15
# percent, with the income weight approximated by 3.
PAYMENT_HISTORY_WEIGHT = 35
INCOME_WEIGHT = 3
UTILIZATION_WEIGHT = 20
ASSET_WEIGHT = 15

# SCALE_NUMERATOR / 100 folded into one integer scalar; there is no later division.
SCORE_SCALE = 1

# Multiplier from score to candidate loan amount.
LOAN_SCALE = 50

SCORE_WEIGHTS = np.array(
    [PAYMENT_HISTORY_WEIGHT, INCOME_WEIGHT, UTILIZATION_WEIGHT, ASSET_WEIGHT],
    dtype=np.int64,
)


def plaintext_score(
    income: int,
    assets: int,
    payment_history: int,
    credit_utilization: int = 0,
) -> int:
    """
    Compute the credit score in plaintext (for verification).

    Mirrors the scoring pipeline term for term, so the decrypted opaque
    score must equal this value exactly.

    Args:
        income: Annual income
        assets: Total assets
        payment_history: Payment history score (0-100)
        credit_utilization: Credit utilization ratio in percent

    Returns:
        Integer score
    """
    attributes = np.array(
        [payment_history, income, credit_utilization, assets],
        dtype=np.int64,
    )
    return int(attributes @ SCORE_WEIGHTS) * SCORE_SCALE


def plaintext_loan_amount(score: int, max_loan: int) -> int:
    """Loan amount the matcher would derive, in plaintext."""
    return min(score * LOAN_SCALE, max_loan)


def plaintext_matches(score: int, pools: List[Dict]) -> List[int]:
    """
    Pool ids a plaintext score qualifies for.

    Args:
        score: Plaintext score
        pools: Dicts with ``min_score`` and ``active`` keys, in registry order

    Returns:
        Qualifying indices in registry order
    """
    return [
        i for i, pool in enumerate(pools)
        if pool.get("active", True) and score >= pool["min_score"]
    ]


def generate_random_profiles(
    num_profiles: int,
    seed: Optional[int] = None,
) -> List[Dict[str, int]]:
    """
    Generate random plaintext financial profiles for testing.

    Args:
        num_profiles: Number of profiles to generate
        seed: Random seed for reproducibility

    Returns:
        List of dicts with income, assets, debts, payment_history and
        credit_utilization
    """
    rng = np.random.default_rng(seed)

    incomes = rng.integers(10_000, 250_000, size=num_profiles)
    assets = rng.integers(0, 1_000_000, size=num_profiles)
    debts = rng.integers(0, 200_000, size=num_profiles)
    history = rng.integers(0, 101, size=num_profiles)
    utilization = rng.integers(0, 101, size=num_profiles)

    return [
        {
            "income": int(incomes[i]),
            "assets": int(assets[i]),
            "debts": int(debts[i]),
            "payment_history": int(history[i]),
            "credit_utilization": int(utilization[i]),
        }
        for i in range(num_profiles)
    ]


class Timer:
    """Context manager for timing operations."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed: Optional[float] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self.start_time

    @property
    def elapsed_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        if self.elapsed is None:
            if self.start_time is not None:
                return (time.perf_counter() - self.start_time) * 1000
            return 0.0
        return self.elapsed * 1000
