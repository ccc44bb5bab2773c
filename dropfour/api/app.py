"""
FastAPI Application - REST API for playing against the AI.

Endpoints:
    GET    /api/v1/health               Health check
    POST   /api/v1/games                Start a game
    GET    /api/v1/games                List games
    GET    /api/v1/games/{id}           Get game state
    POST   /api/v1/games/{id}/moves     Human move, then the AI reply
    POST   /api/v1/games/{id}/reset     Start over in the same session
    DELETE /api/v1/games/{id}           End a game

Move Flow:
    1. POST /moves applies the human move
    2. The AI turn runs through the shared request scheduler
       (rate-limited retries, then local fallback)
    3. The response carries the board after the AI reply and the
       AI's commentary

The app owns the scheduler: it starts on startup and stops on shutdown.
Run with: uvicorn --factory dropfour.api.app:create_app
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings
from ..errors import DropFourError, InvalidMoveError, RateLimitError, SessionNotFoundError
from ..logging_config import setup_logging
from ..remote import InferenceClient
from ..scheduler import RequestScheduler
from ..session import JsonFileStorage, MemoryStorage, SessionManager
from .schemas import (
    CreateGameRequest,
    EndGameResponse,
    ErrorCode,
    ErrorResponse,
    GameListResponse,
    GameResponse,
    HealthResponse,
    MoveRequest,
)
from .service import GameService

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    SessionNotFoundError: 404,
    InvalidMoveError: 400,
    RateLimitError: 429,
}


def build_service(settings: Settings) -> tuple[GameService, InferenceClient]:
    """Wire client, scheduler, storage and sessions from settings."""
    client = InferenceClient(settings.endpoint_url, request_timeout=settings.request_timeout)
    scheduler = RequestScheduler(call=client, config=settings.scheduler)
    storage = JsonFileStorage(settings.stats_path) if settings.stats_path else MemoryStorage()
    manager = SessionManager(
        scheduler=scheduler,
        decision_config=settings.decision,
        storage=storage,
    )
    return GameService(session_manager=manager, version=__version__), client


def create_app(settings: Settings | None = None, service: GameService | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Optional Settings (read from the environment if not provided)
        service: Optional GameService (built from settings if not provided)

    Returns:
        FastAPI application instance
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    client: Optional[InferenceClient] = None
    if service is None:
        service, client = build_service(settings)
    scheduler = service.session_manager.scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            await scheduler.start()
        try:
            yield
        finally:
            service.session_manager.end_all()
            if scheduler is not None:
                await scheduler.stop()
            if client is not None:
                await client.close()

    app = FastAPI(
        title="Drop Four API",
        description="""
Connect Four against a remote AI, with a local fallback strategy.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist or has ended |
| `INVALID_MOVE` | Column not playable, or not your turn |
| `VALIDATION_ERROR` | Malformed request |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(DropFourError)
    async def handle_dropfour_error(request: Request, exc: DropFourError) -> JSONResponse:
        status_code = next(
            (code for kind, code in _ERROR_STATUS.items() if isinstance(exc, kind)),
            500,
        )
        try:
            error_code = ErrorCode(exc.code)
        except ValueError:
            error_code = ErrorCode.INTERNAL_ERROR
        if status_code >= 500:
            logger.error("Unhandled %s on %s: %s", exc.code, request.url.path, exc)
        return make_error_response(error_code, exc.message, status_code, exc.context or None)

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=GameResponse,
        tags=["Games"],
        summary="Start a new game",
    )
    async def create_game(request: CreateGameRequest) -> GameResponse:
        """The human moves first."""
        return service.create_game(request)

    @app.get(
        "/api/v1/games",
        response_model=GameListResponse,
        tags=["Games"],
        summary="List games",
    )
    async def list_games() -> GameListResponse:
        return service.list_games()

    @app.get(
        "/api/v1/games/{session_id}",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get game state",
    )
    async def get_game(session_id: str) -> GameResponse:
        return service.get_game(session_id)

    @app.post(
        "/api/v1/games/{session_id}/moves",
        response_model=GameResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Column not playable or not your turn"},
            404: {"model": ErrorResponse},
        },
        tags=["Games"],
        summary="Play a column",
    )
    async def make_move(session_id: str, request: MoveRequest) -> GameResponse:
        """
        Drop a disc in the given column.

        The AI reply is played before the response is returned, unless
        the human move ended the game.
        """
        return await service.make_move(session_id, request)

    @app.post(
        "/api/v1/games/{session_id}/reset",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Start over",
    )
    async def reset_game(session_id: str) -> GameResponse:
        return service.reset_game(session_id)

    @app.delete(
        "/api/v1/games/{session_id}",
        response_model=EndGameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="End a game",
    )
    async def end_game(session_id: str) -> EndGameResponse:
        return service.end_game(session_id)

    # =========================================================================
    # System Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return service.health()

    @app.get("/", tags=["System"])
    async def root():
        return {
            "service": "dropfour",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app
