from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from royale.api.routes import session
from royale.api.websocket.broadcaster import Broadcaster
from royale.api.websocket.handlers import websocket_endpoint
from royale.api.websocket.manager import ConnectionRegistry
from royale.config import Settings, settings as default_settings
from royale.core.logging_config import configure_logging
from royale.core.metrics import get_metrics
from royale.game_engine.challenges import CodeSandbox, SubmissionJudge, load_question_bank
from royale.game_engine.session import GameSession
from royale.services.game_service import GameService


def build_game_service(settings: Settings) -> GameService:
    """Wire the session, sandbox and delivery for one process."""
    questions = load_question_bank(settings.questions_file)
    game_session = GameSession(
        questions,
        max_players=settings.max_player_count,
        question_timeout_ms=settings.question_timeout_ms,
        finish_when_all_eliminated=settings.finish_when_all_eliminated,
    )
    sandbox = CodeSandbox(
        timeout_ms=settings.sandbox_timeout_ms,
        memory_limit_mb=settings.sandbox_memory_limit_mb,
        max_code_length=settings.sandbox_max_code_length,
    )
    return GameService(
        session=game_session,
        broadcaster=Broadcaster(ConnectionRegistry()),
        judge=SubmissionJudge(sandbox),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)
    game_service = build_game_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await game_service.start()
        yield
        await game_service.stop(grace=settings.shutdown_grace_ms / 1000)

    app = FastAPI(
        title="Code Royale",
        description="A last-player-standing coding challenge game",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.game_service = game_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST API routes
    app.include_router(session.router, prefix="/api/session", tags=["session"])

    # WebSocket endpoint shares the root path with the client page
    app.add_api_websocket_route("/", websocket_endpoint)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    if settings.metrics_enabled:
        @app.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            body, content_type = await get_metrics()
            return Response(content=body, media_type=content_type)

    index_path = settings.static_dir / "index.html"

    @app.get("/", response_model=None)
    async def root() -> Any:
        if index_path.exists():
            return FileResponse(index_path)
        return JSONResponse({
            "name": "Code Royale",
            "tagline": "Last coder standing",
            "version": "0.1.0",
            "websocket": "/",
        })

    # Mount static client (if directory exists)
    if settings.static_dir.exists():
        app.mount("/", StaticFiles(directory=str(settings.static_dir)), name="static")

    return app


app = create_app()
