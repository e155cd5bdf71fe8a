"""
FastAPI application for the Rally matchmaking and tournament service.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from typing import Optional

from src.errors import (
    BracketNotFoundError, InsufficientCandidatesError, InvalidWinnerError,
    PersistenceError, RallyError, StaleBracketError, ValidationError
)
from src.utils.log import setup_logger
from src.web.engine_manager import EngineManager
from src.web.models import (
    AdvanceRequest, BracketResponse, CreateBracketRequest, HealthResponse,
    LeagueScheduleRequest, LeagueScheduleResponse, MatchRequest, MatchResponse,
    RatingUpdateRequest, RatingUpdateResponse
)

API_VERSION = "1.0.0"

logger = setup_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Rally",
    description="Matchmaking, Elo ratings, brackets and leagues for racket-sport players",
    version=API_VERSION
)

# Global instance (initialized in startup)
engine_manager: Optional[EngineManager] = None


@app.on_event("startup")
async def startup():
    """Initialize global instances on startup."""
    global engine_manager

    engine_manager = EngineManager()
    logger.info("Rally service started (data dir: %s)", engine_manager.config.data_dir)


# =============================================================================
# Error mapping
# =============================================================================

# Checked in order; subclasses come before their bases
ERROR_STATUS = [
    (StaleBracketError, 409),
    (BracketNotFoundError, 404),
    (InsufficientCandidatesError, 404),
    (InvalidWinnerError, 400),
    (ValidationError, 422),
    (PersistenceError, 503),
]


@app.exception_handler(RallyError)
async def rally_error_handler(request: Request, exc: RallyError):
    """Translate engine errors into HTTP responses."""
    status_code = 500
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# =============================================================================
# REST API Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse)
async def health():
    """Service health check."""
    return HealthResponse(status="ok", version=API_VERSION)


@app.post("/match", response_model=MatchResponse)
async def find_match(request: MatchRequest):
    """Propose partners for a player from the given pool."""
    return engine_manager.find_matches(request)


@app.post("/bracket", response_model=BracketResponse)
async def create_bracket(request: CreateBracketRequest):
    """Create and store a 16-player single-elimination bracket."""
    return engine_manager.create_bracket(request)


@app.get("/bracket/{bracket_id}", response_model=BracketResponse)
async def get_bracket(bracket_id: str):
    """Get a stored bracket."""
    return engine_manager.get_bracket(bracket_id)


@app.post("/bracket/{bracket_id}/advance", response_model=BracketResponse)
async def advance_bracket(bracket_id: str, request: AdvanceRequest):
    """Report the winner of a bracket match."""
    return engine_manager.advance_bracket(bracket_id, request)


@app.post("/league/schedule", response_model=LeagueScheduleResponse)
async def league_schedule(request: LeagueScheduleRequest):
    """Generate a round-robin league schedule."""
    return engine_manager.league_schedule(request)


@app.post("/rating/update", response_model=RatingUpdateResponse)
async def update_rating(request: RatingUpdateRequest):
    """Apply a match result to the given ratings."""
    return engine_manager.update_ratings(request)
