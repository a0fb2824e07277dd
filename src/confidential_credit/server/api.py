"""
FastAPI server for confidential credit scoring.

Endpoints:
- GET  /health - Backend and registry status
- PUT  /profiles/me - Submit the caller's encrypted financial data
- POST /profiles/me/score - Compute the caller's encrypted score
- GET  /profiles/{owner} - Opaque profile view
- POST /pools - Register a lending pool
- POST /pools/{pool_id}/deactivate - Deactivate a pool
- GET  /pools - List pools
- POST /matches - Pools an encrypted score qualifies for
- POST /pools/{pool_id}/loan-amount - Encrypted loan amount for a pool

The caller identity travels in the X-Caller header. Opaque values travel
as hex strings.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from confidential_credit.config import Settings, get_settings
from confidential_credit.server.oracle import CreditOracle
from confidential_credit.shared.errors import (
    ConfidentialCreditError,
    DecryptionUnavailable,
    InvalidPool,
    MalformedCiphertext,
    PlaintextOutOfRange,
    PoolInactive,
    ProfileNotFound,
    UnauthorizedCaller,
)
from confidential_credit.shared.protocol import CreditProfile, LendingPool
from confidential_credit.shared.utils import Timer


# Pydantic models for API
class FinancialDataRequest(BaseModel):
    """Encrypted financial attributes (hex)."""
    income: str
    assets: str
    debts: str
    payment_history: str
    credit_utilization: Optional[str] = None


class ProfileResponse(BaseModel):
    """Opaque view of a credit profile."""
    owner: str
    income: str
    assets: str
    debts: str
    payment_history: str
    credit_utilization: str
    computed_score: Optional[str] = None
    score_stale: bool
    revision: int
    updated_at: datetime


class ScoreResponse(BaseModel):
    """Encrypted credit score."""
    score: str
    revision: int
    server_time_ms: float


class AddPoolRequest(BaseModel):
    """Request to register a lending pool."""
    operator: str
    min_score: str = Field(..., description="Hex-encoded encrypted minimum score")
    max_loan: str = Field(..., description="Hex-encoded encrypted maximum loan")
    interest_rate_bps: int = Field(..., ge=0)
    name: str


class PoolResponse(BaseModel):
    """Public view of a lending pool (thresholds stay encrypted)."""
    pool_id: int
    operator: str
    name: str
    interest_rate_bps: int
    active: bool
    min_score: str
    max_loan: str


class ScoreRequest(BaseModel):
    """An encrypted score (hex)."""
    score: str


class MatchResponse(BaseModel):
    """Qualifying pool ids."""
    pool_ids: List[int]
    server_time_ms: float


class LoanAmountResponse(BaseModel):
    """Encrypted loan amount."""
    pool_id: int
    amount: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    backend: str
    ciphertext_size: int
    num_pools: int
    num_profiles: int


# Server state
class ServerState:
    """Server state container."""
    def __init__(self):
        self.oracle: Optional[CreditOracle] = None


state = ServerState()

ERROR_STATUS = [
    (UnauthorizedCaller, 403),
    (DecryptionUnavailable, 403),
    (MalformedCiphertext, 400),
    (PlaintextOutOfRange, 400),
    (ProfileNotFound, 404),
    (InvalidPool, 404),
    (PoolInactive, 409),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the oracle on startup if none was injected."""
    if state.oracle is None:
        logger.info("Initializing credit oracle from settings...")
        state.oracle = CreditOracle.from_settings(get_settings())
    logger.info(
        f"Server ready: backend={state.oracle.codec.backend.name}, "
        f"pools={len(state.oracle.registry)}"
    )
    yield
    logger.info("Server shutting down...")


app = FastAPI(
    title="Confidential Credit",
    description="Encrypted credit scoring and lending pool matching API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ConfidentialCreditError)
async def domain_error_handler(request: Request, exc: ConfidentialCreditError):
    """Map engine errors to HTTP status codes."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS if isinstance(exc, error_type)),
        400,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def get_oracle() -> CreditOracle:
    if state.oracle is None:
        state.oracle = CreditOracle.from_settings(get_settings())
    return state.oracle


def profile_to_response(profile: CreditProfile) -> ProfileResponse:
    return ProfileResponse(
        owner=profile.owner,
        income=profile.income.hex(),
        assets=profile.assets.hex(),
        debts=profile.debts.hex(),
        payment_history=profile.payment_history.hex(),
        credit_utilization=profile.credit_utilization.hex(),
        computed_score=(
            profile.computed_score.hex() if profile.computed_score is not None else None
        ),
        score_stale=profile.is_score_stale,
        revision=profile.revision,
        updated_at=profile.updated_at,
    )


def pool_to_response(pool: LendingPool) -> PoolResponse:
    return PoolResponse(
        pool_id=pool.pool_id,
        operator=pool.operator,
        name=pool.name,
        interest_rate_bps=pool.interest_rate_bps,
        active=pool.active,
        min_score=pool.min_score.hex(),
        max_loan=pool.max_loan.hex(),
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    oracle = get_oracle()
    return HealthResponse(
        status="healthy",
        backend=oracle.codec.backend.name,
        ciphertext_size=oracle.codec.ciphertext_size,
        num_pools=len(oracle.registry),
        num_profiles=len(oracle.store),
    )


@app.put("/profiles/me", response_model=ProfileResponse)
async def submit_financial_data(
    request: FinancialDataRequest,
    caller: str = Header(..., alias="X-Caller"),
):
    """Replace the caller's profile with new encrypted attributes."""
    oracle = get_oracle()
    codec = oracle.codec
    utilization = (
        codec.from_hex(request.credit_utilization)
        if request.credit_utilization is not None else None
    )
    profile = oracle.update_financial_data(
        caller,
        codec.from_hex(request.income),
        codec.from_hex(request.assets),
        codec.from_hex(request.debts),
        codec.from_hex(request.payment_history),
        utilization,
    )
    return profile_to_response(profile)


@app.post("/profiles/me/score", response_model=ScoreResponse)
async def compute_score(caller: str = Header(..., alias="X-Caller")):
    """
    Compute the caller's credit score.

    The server never sees the inputs or the score in plaintext.
    """
    oracle = get_oracle()
    with Timer() as t:
        score = oracle.compute_credit_score(caller)
    profile = oracle.get_profile(caller)
    return ScoreResponse(
        score=score.hex(),
        revision=profile.score_revision,
        server_time_ms=t.elapsed_ms,
    )


@app.get("/profiles/{owner}", response_model=ProfileResponse)
async def get_profile(owner: str):
    """Opaque view of a profile."""
    return profile_to_response(get_oracle().get_profile(owner))


@app.post("/pools", response_model=PoolResponse)
async def add_pool(
    request: AddPoolRequest,
    caller: str = Header(..., alias="X-Caller"),
):
    """Register a lending pool (requires the pool registrar grant)."""
    oracle = get_oracle()
    pool_id = oracle.add_lending_pool(
        caller,
        request.operator,
        oracle.codec.from_hex(request.min_score),
        oracle.codec.from_hex(request.max_loan),
        request.interest_rate_bps,
        request.name,
    )
    return pool_to_response(oracle.get_pool(pool_id))


@app.post("/pools/{pool_id}/deactivate", response_model=PoolResponse)
async def deactivate_pool(pool_id: int, caller: str = Header(..., alias="X-Caller")):
    """Deactivate a pool (operator or owner only)."""
    return pool_to_response(get_oracle().deactivate_pool(caller, pool_id))


@app.get("/pools", response_model=List[PoolResponse])
async def list_pools():
    """All pools in registration order, including inactive ones."""
    return [pool_to_response(p) for p in get_oracle().pools()]


@app.post("/matches", response_model=MatchResponse)
async def find_matches(request: ScoreRequest):
    """Pools whose encrypted minimum score the encrypted score meets."""
    oracle = get_oracle()
    score = oracle.codec.from_hex(request.score)
    with Timer() as t:
        pool_ids = oracle.find_loan_matches(score)
    return MatchResponse(pool_ids=pool_ids, server_time_ms=t.elapsed_ms)


@app.post("/pools/{pool_id}/loan-amount", response_model=LoanAmountResponse)
async def optimal_loan_amount(pool_id: int, request: ScoreRequest):
    """Encrypted loan amount, capped at the pool's encrypted maximum."""
    oracle = get_oracle()
    amount = oracle.get_optimal_loan_amount(oracle.codec.from_hex(request.score), pool_id)
    return LoanAmountResponse(pool_id=pool_id, amount=amount.hex())


def create_app(
    oracle: Optional[CreditOracle] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI app.

    For programmatic use in tests and demos.
    """
    if oracle is None:
        oracle = CreditOracle.from_settings(settings or get_settings())
    state.oracle = oracle
    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the server directly."""
    import uvicorn

    from confidential_credit.log import configure_logging

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(app, host=host or settings.API_HOST, port=port or settings.API_PORT)


if __name__ == "__main__":
    run_server()
