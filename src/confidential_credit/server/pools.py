"""
Lending pool registry and matcher.

Pools live in an append-only arena; a pool's index is its permanent id.
Pools are deactivated, never removed, so ids are never reused or
compacted.
"""
import threading
from dataclasses import replace
from typing import List, Optional, Tuple

from loguru import logger

from confidential_credit.server.audit import AuditSink, emit_audit
from confidential_credit.server.engine import HomomorphicEngine
from confidential_credit.server.gate import AuthorizationGate
from confidential_credit.shared.errors import InvalidPool, PoolInactive, UnauthorizedCaller
from confidential_credit.shared.protocol import (
    AuditRecord,
    Capability,
    Identity,
    LendingPool,
    OpaqueValue,
)
from confidential_credit.shared.utils import LOAN_SCALE


class PoolRegistry:
    """
    Registered pools plus the matching logic run against them.

    Writes are serialized by one lock. Matching reads a snapshot taken at
    call time and does not wait for later appends.
    """

    def __init__(
        self,
        engine: HomomorphicEngine,
        gate: AuthorizationGate,
        identity: Identity,
        audit_sink: Optional[AuditSink] = None,
    ):
        """
        Args:
            engine: Engine used for comparisons and loan arithmetic
            gate: Gate checked for POOL_REGISTRAR on registration
            identity: Service identity the matcher acts under on the engine
            audit_sink: Sink for registry mutations
        """
        self.engine = engine
        self.gate = gate
        self.identity = identity
        self.audit_sink = audit_sink
        self._pools: List[LendingPool] = []
        self._lock = threading.Lock()

    def add_pool(
        self,
        caller: Identity,
        operator: Identity,
        min_score: OpaqueValue,
        max_loan: OpaqueValue,
        interest_rate_bps: int,
        name: str,
    ) -> int:
        """
        Register a pool.

        Args:
            caller: Registrant, must hold POOL_REGISTRAR
            operator: Identity operating the pool
            min_score: Encrypted minimum score
            max_loan: Encrypted maximum loan amount
            interest_rate_bps: Public interest rate in basis points
            name: Display name

        Returns:
            The new pool's id
        """
        self.gate.require(caller, Capability.POOL_REGISTRAR)
        self.engine.codec.validate(min_score)
        self.engine.codec.validate(max_loan)
        if isinstance(interest_rate_bps, bool) or not isinstance(interest_rate_bps, int) \
                or interest_rate_bps < 0:
            raise ValueError("interest_rate_bps must be a non-negative int")

        with self._lock:
            pool_id = len(self._pools)
            self._pools.append(
                LendingPool(
                    pool_id=pool_id,
                    operator=operator,
                    min_score=min_score,
                    max_loan=max_loan,
                    interest_rate_bps=interest_rate_bps,
                    name=name,
                )
            )

        logger.info(f"Pool {pool_id} ({name!r}) registered by {caller}")
        self._audit("add_pool", caller, min_score.blob)
        return pool_id

    def deactivate_pool(self, caller: Identity, pool_id: int) -> LendingPool:
        """Clear a pool's active flag. Only its operator or the gate owner may."""
        with self._lock:
            pool = self._get(pool_id)
            if caller not in (pool.operator, self.gate.owner):
                raise UnauthorizedCaller(caller, f"deactivate pool {pool_id}")
            if pool.active:
                pool = replace(pool, active=False)
                self._pools[pool_id] = pool

        logger.info(f"Pool {pool_id} deactivated by {caller}")
        self._audit("deactivate_pool", caller, None)
        return pool

    def _get(self, pool_id: int) -> LendingPool:
        if isinstance(pool_id, bool) or not isinstance(pool_id, int) \
                or not 0 <= pool_id < len(self._pools):
            raise InvalidPool(pool_id)
        return self._pools[pool_id]

    def get_pool(self, pool_id: int) -> LendingPool:
        with self._lock:
            return self._get(pool_id)

    def pools(self) -> Tuple[LendingPool, ...]:
        """Consistent snapshot of the registry in registration order."""
        with self._lock:
            return tuple(self._pools)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)

    def find_matches(self, score: OpaqueValue) -> List[int]:
        """
        Pools whose minimum score ``score`` meets.

        Inactive pools are skipped without a comparison. The score is
        validated up front, whatever the registry holds.

        Args:
            score: Opaque credit score

        Returns:
            Qualifying pool ids in registration order
        """
        self.engine.codec.validate(score)
        matches = []
        for pool in self.pools():
            if not pool.active:
                continue
            if self.engine.compare_at_least(self.identity, score, pool.min_score):
                matches.append(pool.pool_id)

        logger.debug(f"find_matches: {len(matches)} pool(s) qualified")
        return matches

    def optimal_loan_amount(self, score: OpaqueValue, pool_id: int) -> OpaqueValue:
        """
        Loan amount for ``score`` in ``pool_id``, capped at the pool maximum.

        Returns:
            The pool's own max_loan value when the candidate reaches it,
            otherwise score * LOAN_SCALE
        """
        pool = self.get_pool(pool_id)
        if not pool.active:
            raise PoolInactive(pool_id)

        candidate = self.engine.scalar_multiply(self.identity, score, LOAN_SCALE)
        if self.engine.compare_at_least(self.identity, candidate, pool.max_loan):
            return pool.max_loan
        return candidate

    def _audit(self, operation: str, caller: Identity, payload: Optional[bytes]) -> None:
        emit_audit(
            self.audit_sink,
            AuditRecord(
                operation=operation,
                caller=caller,
                payload=payload,
                timestamp=self.engine.clock.now(),
            ),
        )
