"""Shared types, errors and utilities."""
from confidential_credit.shared.protocol import (
    Identity,
    Capability,
    OpaqueValue,
    CreditProfile,
    LendingPool,
    AuditRecord,
    LoanQuote,
    ScoreReport,
)
from confidential_credit.shared.errors import (
    ConfidentialCreditError,
    UnauthorizedCaller,
    MalformedCiphertext,
    PlaintextOutOfRange,
    DecryptionUnavailable,
    ProfileNotFound,
    InvalidPool,
    PoolInactive,
)
from confidential_credit.shared.clock import Clock, SystemClock, FixedClock
from confidential_credit.shared.utils import (
    LOAN_SCALE,
    SCORE_SCALE,
    generate_random_profiles,
    plaintext_loan_amount,
    plaintext_matches,
    plaintext_score,
    Timer,
)

__all__ = [
    "Identity",
    "Capability",
    "OpaqueValue",
    "CreditProfile",
    "LendingPool",
    "AuditRecord",
    "LoanQuote",
    "ScoreReport",
    "ConfidentialCreditError",
    "UnauthorizedCaller",
    "MalformedCiphertext",
    "PlaintextOutOfRange",
    "DecryptionUnavailable",
    "ProfileNotFound",
    "InvalidPool",
    "PoolInactive",
    "Clock",
    "SystemClock",
    "FixedClock",
    "LOAN_SCALE",
    "SCORE_SCALE",
    "generate_random_profiles",
    "plaintext_loan_amount",
    "plaintext_matches",
    "plaintext_score",
    "Timer",
]
