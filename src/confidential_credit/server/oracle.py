"""
Credit oracle: the engine, store, pipeline and registry wired together.

The oracle acts on the engine under its own service identity, which the
deploying owner authorizes at construction time.
"""
from typing import List, Optional, Tuple

from loguru import logger

from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.server.audit import AuditSink, LoggingAuditSink
from confidential_credit.server.engine import HomomorphicEngine
from confidential_credit.server.gate import AuthorizationGate
from confidential_credit.server.pools import PoolRegistry
from confidential_credit.server.profiles import ProfileStore
from confidential_credit.server.scoring import ScoringPipeline
from confidential_credit.shared.clock import Clock, SystemClock
from confidential_credit.shared.protocol import (
    Capability,
    CreditProfile,
    Identity,
    LendingPool,
    OpaqueValue,
)

# (name, min_score, max_loan, interest_rate_bps)
DEMO_POOLS = [
    ("Conservative Pool", 600, 10_000, 800),
    ("Balanced Pool", 700, 25_000, 600),
    ("Premium Pool", 800, 50_000, 400),
]


class CreditOracle:
    """Confidential credit scoring and loan matching service."""

    def __init__(
        self,
        codec: OpaqueCodec,
        owner: Identity = "deployer",
        identity: Identity = "credit-oracle",
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            codec: Codec over the configured encryption backend
            owner: Deploying identity, implicitly authorized for everything
            identity: Service identity used for engine calls
            audit_sink: Audit destination (defaults to the log)
            clock: Time source shared by all components
        """
        self.codec = codec
        self.owner = owner
        self.identity = identity
        self.clock = clock or SystemClock()
        self.audit_sink = audit_sink if audit_sink is not None else LoggingAuditSink()

        self.gate = AuthorizationGate(owner)
        self.engine = HomomorphicEngine(codec, self.gate, self.audit_sink, self.clock)
        self.store = ProfileStore(codec, self.clock)
        self.pipeline = ScoringPipeline(self.engine, self.store, identity)
        self.registry = PoolRegistry(self.engine, self.gate, identity, self.audit_sink)

        self.gate.grant(owner, identity, Capability.ENGINE)

    @classmethod
    def from_settings(cls, settings, audit_sink: Optional[AuditSink] = None) -> "CreditOracle":
        """Build an oracle (and optionally the demo pools) from settings."""
        oracle = cls(
            codec=OpaqueCodec.from_settings(settings),
            owner=settings.OWNER_IDENTITY,
            identity=settings.ORACLE_IDENTITY,
            audit_sink=audit_sink,
        )
        if settings.SEED_DEMO_POOLS:
            seed_demo_pools(oracle)
        return oracle

    # === Profiles ===

    def update_financial_data(
        self,
        caller: Identity,
        income: OpaqueValue,
        assets: OpaqueValue,
        debts: OpaqueValue,
        payment_history: OpaqueValue,
        credit_utilization: Optional[OpaqueValue] = None,
    ) -> CreditProfile:
        """Replace the caller's own profile."""
        return self.store.submit(
            caller, caller, income, assets, debts, payment_history, credit_utilization
        )

    def compute_credit_score(self, caller: Identity) -> OpaqueValue:
        """Score the caller's own profile."""
        return self.pipeline.compute_score(caller, caller=caller)

    def get_profile(self, owner: Identity) -> CreditProfile:
        return self.store.get(owner)

    # === Pools ===

    def add_lending_pool(
        self,
        caller: Identity,
        operator: Identity,
        min_score: OpaqueValue,
        max_loan: OpaqueValue,
        interest_rate_bps: int,
        name: str,
    ) -> int:
        return self.registry.add_pool(
            caller, operator, min_score, max_loan, interest_rate_bps, name
        )

    def deactivate_pool(self, caller: Identity, pool_id: int) -> LendingPool:
        return self.registry.deactivate_pool(caller, pool_id)

    def find_loan_matches(self, score: OpaqueValue) -> List[int]:
        return self.registry.find_matches(score)

    def get_optimal_loan_amount(self, score: OpaqueValue, pool_id: int) -> OpaqueValue:
        return self.registry.optimal_loan_amount(score, pool_id)

    def get_pool(self, pool_id: int) -> LendingPool:
        return self.registry.get_pool(pool_id)

    def pools(self) -> Tuple[LendingPool, ...]:
        return self.registry.pools()


def seed_demo_pools(oracle: CreditOracle) -> List[int]:
    """
    Register the three demo pools (Conservative, Balanced, Premium).

    Returns:
        Their pool ids
    """
    codec = oracle.codec
    pool_ids = [
        oracle.add_lending_pool(
            oracle.owner,
            oracle.owner,
            codec.encrypt(min_score),
            codec.encrypt(max_loan),
            rate_bps,
            name,
        )
        for name, min_score, max_loan, rate_bps in DEMO_POOLS
    ]
    logger.info(f"Seeded {len(pool_ids)} demo pools")
    return pool_ids
