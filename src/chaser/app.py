"""Application entry point: FastAPI routes around the follow-up engine.

Configures:
- **structlog** with JSON rendering (production) or colored console (development),
  optionally forwarding errors to Sentry
- **Services**: SQLite store, Gmail gateway, Anthropic-backed language model
  service, voice catalog, and the follow-up engine
- **Routes** for the periodic trigger (``GET /cron``), per-user sync, the
  manual follow-up trigger, request edits, settings, and the voice catalog
- **Observability**: request IDs, Prometheus metrics, health/readiness probes

Engine calls are synchronous and run in a worker thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, TextIO

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chaser.config import Settings, get_settings, validate_credentials
from chaser.domain.errors import (
    ChaserError,
    CredentialRefreshError,
    FollowupInProgressError,
    NotFoundError,
    PreconditionFailedError,
    RunFailedError,
)
from chaser.domain.types import FollowupAction
from chaser.engine.orchestrator import FollowupEngine
from chaser.engine.requests import (
    RequestUpdate,
    delete_request,
    update_followup_action,
    update_request,
)
from chaser.health import register_health_routes
from chaser.llm.voices import VoiceCatalog
from chaser.mail.client import GmailGateway
from chaser.observability.metrics import setup_metrics
from chaser.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from chaser.observability.sentry import get_sentry_processor, init_sentry
from chaser.store.schema import close_db, init_db
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


def configure_logging(
    production: bool = False,
    *,
    sentry_enabled: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Insert the Sentry processor so ERROR events are forwarded.
        stream: Where log lines are written (default: stdout).
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())

    if production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    Opens the database, and creates the store, voice catalog, Gmail gateway,
    language model service (if ``ANTHROPIC_API_KEY`` is set), and the
    follow-up engine (only when the language model service exists).

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    # a. SQLite database and store
    db_path = settings.database_path
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = init_db(db_path)
    store = ChaserStore(conn)
    services["conn"] = conn
    services["store"] = store

    # b. Voice catalog
    voices = VoiceCatalog(store)
    services["voices"] = voices

    # c. Gmail gateway (per-user tokens live in the store)
    mail = GmailGateway(store, settings)
    services["mail"] = mail

    # d. Language model service (if anthropic_api_key is set)
    llm = None
    if settings.anthropic_api_key.get_secret_value():
        try:
            from chaser.llm.client import get_anthropic_client
            from chaser.llm.service import LanguageModelService

            llm = LanguageModelService(get_anthropic_client(settings))
            logger.info("Language model service initialized")
        except Exception:
            logger.warning("Failed to initialize language model service", exc_info=True)
    else:
        logger.info("ANTHROPIC_API_KEY not set, language model service disabled")
    services["llm"] = llm

    # e. Follow-up engine
    engine = None
    if llm is not None:
        engine = FollowupEngine(store, mail, llm, settings, voices=voices)
        logger.info("Follow-up engine initialized")
    services["engine"] = engine

    return services


class SettingsUpdate(BaseModel):
    """Body of ``PATCH /users/{user_id}/settings``."""

    followup_action: str


def _engine(request: Request) -> FollowupEngine:
    engine: FollowupEngine | None = request.app.state.services.get("engine")
    if engine is None:
        raise HTTPException(status_code=503, detail="Follow-up engine is not configured")
    return engine


def _store(request: Request) -> ChaserStore:
    store: ChaserStore = request.app.state.services["store"]
    return store


def _check_cron_auth(request: Request, settings: Settings) -> None:
    secret = settings.cron_secret.get_secret_value()
    if not secret:
        return
    supplied = request.headers.get("Authorization", "")
    if not hmac.compare_digest(supplied.encode(), f"Bearer {secret}".encode()):
        logger.warning("Rejected cron trigger with bad credentials")
        raise HTTPException(status_code=401, detail="Unauthorized")


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP status codes.

    Args:
        app: The FastAPI application instance.
    """

    def _handler(status_code: int) -> Any:
        async def handle(request: Request, exc: Exception) -> JSONResponse:
            return JSONResponse(status_code=status_code, content={"error": str(exc)})

        return handle

    app.add_exception_handler(NotFoundError, _handler(404))
    app.add_exception_handler(FollowupInProgressError, _handler(409))
    app.add_exception_handler(PreconditionFailedError, _handler(400))
    app.add_exception_handler(CredentialRefreshError, _handler(502))
    app.add_exception_handler(RunFailedError, _handler(500))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On shutdown: closes the database connection.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    logger.info("FastAPI application starting")
    yield
    conn = app.state.services.get("conn")
    if conn is not None:
        close_db(conn)
        logger.info("Database connection closed")


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, engine routes, and observability.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Payment Chaser", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings") or get_settings()
    fastapi_app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(fastapi_app)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)

    @fastapi_app.get("/cron")
    async def cron(request: Request) -> dict[str, Any]:
        """Periodic trigger: sync every user and follow up every due request."""
        _check_cron_auth(request, request.app.state.settings)
        summary = await asyncio.to_thread(_engine(request).run_all)
        return {"success": True, **summary.model_dump()}

    @fastapi_app.post("/users/{user_id}/sync")
    async def sync(user_id: str, request: Request) -> dict[str, Any]:
        """Ingest the user's labelled threads and auto-close paid requests."""
        summary = await asyncio.to_thread(_engine(request).sync_user, user_id)
        return summary.model_dump()

    @fastapi_app.post("/users/{user_id}/requests/{request_id}/followup")
    async def followup(user_id: str, request_id: str, request: Request) -> dict[str, Any]:
        """Manual trigger: follow up one request now, ignoring its interval."""
        engine = _engine(request)
        try:
            result = await asyncio.to_thread(engine.followup_now, request_id, user_id)
        except ChaserError:
            raise
        except Exception as exc:
            logger.exception("Manual follow-up failed", request_id=request_id, user_id=user_id)
            raise HTTPException(status_code=502, detail="Mail or language model failure") from exc
        return {"success": True, **result.model_dump(mode="json")}

    @fastapi_app.patch("/users/{user_id}/requests/{request_id}")
    async def edit_request(
        user_id: str, request_id: str, body: RequestUpdate, request: Request
    ) -> dict[str, Any]:
        """Apply a user edit (fields and/or status) to a request."""
        updated = await asyncio.to_thread(
            update_request, _store(request), user_id, request_id, body
        )
        return updated.model_dump(mode="json")

    @fastapi_app.delete("/users/{user_id}/requests/{request_id}")
    async def remove_request(user_id: str, request_id: str, request: Request) -> dict[str, bool]:
        """Delete a request and its follow-ups."""
        await asyncio.to_thread(delete_request, _store(request), user_id, request_id)
        return {"success": True}

    @fastapi_app.patch("/users/{user_id}/settings")
    async def edit_settings(
        user_id: str, body: SettingsUpdate, request: Request
    ) -> dict[str, Any]:
        """Change whether due follow-ups are drafted or sent."""
        try:
            action = FollowupAction(body.followup_action)
        except ValueError as exc:
            raise HTTPException(
                status_code=400, detail="followup_action must be 'draft' or 'send'"
            ) from exc
        await asyncio.to_thread(update_followup_action, _store(request), user_id, action)
        return {"success": True, "followup_action": action.value}

    @fastapi_app.get("/voices")
    async def voices(request: Request) -> list[dict[str, Any]]:
        """Return the voice catalog in display order."""
        catalog: VoiceCatalog = request.app.state.services["voices"]
        found = await asyncio.to_thread(catalog.list_voices)
        return [v.model_dump() for v in found]

    return fastapi_app


async def main() -> None:
    """Main entry point: configure, initialize services, and serve HTTP.

    1. Configure logging (and Sentry when ``SENTRY_DSN`` is set)
    2. Validate credentials
    3. Initialize services and create the FastAPI app
    4. Run uvicorn until shutdown, then close the database
    """
    settings = get_settings()
    environment = "production" if settings.production else "development"
    init_sentry(settings.sentry_dsn, environment=environment)
    configure_logging(production=settings.production, sentry_enabled=bool(settings.sentry_dsn))
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.http_port,
        log_level="info",
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    finally:
        conn = services.get("conn")
        if conn is not None:
            close_db(conn)
            logger.info("Database connection closed on shutdown")


if __name__ == "__main__":
    asyncio.run(main())
