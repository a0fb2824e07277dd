"""Shared fixtures."""
import pytest

from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.server.audit import InMemoryAuditSink
from confidential_credit.server.gate import AuthorizationGate
from confidential_credit.server.engine import HomomorphicEngine
from confidential_credit.server.oracle import CreditOracle
from confidential_credit.shared.clock import FixedClock

OWNER = "deployer"
ORACLE = "credit-oracle"
ALICE = "0xA11CE"
BOB = "0xB0B"
MALLORY = "0xBAD"


@pytest.fixture
def codec():
    return OpaqueCodec.simulated(seed="test-seed")


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def gate():
    return AuthorizationGate(OWNER)


@pytest.fixture
def engine(codec, gate, audit_sink, clock):
    gate.grant(OWNER, ORACLE)
    return HomomorphicEngine(codec, gate, audit_sink, clock)


@pytest.fixture
def oracle(codec, audit_sink, clock):
    return CreditOracle(
        codec, owner=OWNER, identity=ORACLE, audit_sink=audit_sink, clock=clock
    )
