"""Server-side components for confidential credit scoring."""
from confidential_credit.server.audit import (
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
)
from confidential_credit.server.gate import AuthorizationGate
from confidential_credit.server.engine import HomomorphicEngine
from confidential_credit.server.profiles import ProfileStore
from confidential_credit.server.scoring import ScoringPipeline
from confidential_credit.server.pools import PoolRegistry
from confidential_credit.server.oracle import CreditOracle, seed_demo_pools
from confidential_credit.server.api import app, create_app, run_server

__all__ = [
    "AuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "AuthorizationGate",
    "HomomorphicEngine",
    "ProfileStore",
    "ScoringPipeline",
    "PoolRegistry",
    "CreditOracle",
    "seed_demo_pools",
    "app",
    "create_app",
    "run_server",
]
