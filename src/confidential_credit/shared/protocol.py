"""
Data definitions shared by the client and server sides.

None of these types carry plaintext financial data: every sensitive field
is an OpaqueValue.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

Identity = str


class Capability(Enum):
    """Grants tracked by the authorization gate."""
    ENGINE = "engine"                  # invoke homomorphic operations
    POOL_REGISTRAR = "pool_registrar"  # register lending pools
    DECRYPT = "decrypt"                # privileged engine decrypt


@dataclass(frozen=True)
class OpaqueValue:
    """
    Encrypted non-negative integer.

    The blob length is fixed by the backend that produced it. Upper layers
    only receive these from the codec or the engine; ``from_hex`` exists for
    the transport boundary and its result must pass codec validation before
    use.
    """
    blob: bytes

    def __len__(self) -> int:
        return len(self.blob)

    def hex(self) -> str:
        return self.blob.hex()

    @classmethod
    def from_hex(cls, value: str) -> "OpaqueValue":
        return cls(bytes.fromhex(value))

    def __repr__(self) -> str:
        return f"OpaqueValue({self.blob[:6].hex()}…, {len(self.blob)} bytes)"


@dataclass(frozen=True)
class CreditProfile:
    """
    One owner's encrypted financial attributes.

    Replaced wholesale on every submission. ``revision`` counts submissions;
    ``score_revision`` records which submission the computed score was
    derived from.
    """
    owner: Identity
    income: OpaqueValue
    assets: OpaqueValue
    debts: OpaqueValue
    payment_history: OpaqueValue
    credit_utilization: OpaqueValue
    updated_at: datetime
    revision: int = 1
    computed_score: Optional[OpaqueValue] = None
    score_revision: Optional[int] = None
    exists: bool = True

    @property
    def is_score_stale(self) -> bool:
        """True when a score exists but predates the latest submission."""
        return self.computed_score is not None and self.score_revision != self.revision


@dataclass(frozen=True)
class LendingPool:
    """A registered lending pool. ``pool_id`` is its permanent registry index."""
    pool_id: int
    operator: Identity
    min_score: OpaqueValue
    max_loan: OpaqueValue
    interest_rate_bps: int
    name: str
    active: bool = True


@dataclass(frozen=True)
class AuditRecord:
    """Audit event. ``payload`` is an opaque blob or None, never plaintext."""
    operation: str
    caller: Identity
    payload: Optional[bytes] = None
    timestamp: Optional[datetime] = None


@dataclass
class LoanQuote:
    """A qualifying pool with the opaque loan amount offered to the borrower."""
    pool_id: int
    pool_name: str
    interest_rate_bps: int
    amount: OpaqueValue
    revealed_amount: Optional[int] = None


@dataclass
class ScoreReport:
    """Outcome of a borrower's full application flow."""
    score: OpaqueValue
    matches: List[int] = field(default_factory=list)
    quotes: List[LoanQuote] = field(default_factory=list)
    revealed_score: Optional[int] = None
