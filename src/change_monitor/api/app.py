"""FastAPI application: monitoring REST API, accounts and the real-time WebSocket."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from change_monitor import __version__
from change_monitor.config.settings import MonitorSettings, get_config
from change_monitor.models import (
    AdapterError,
    AuthenticationError,
    BaseError,
    ConfigurationError,
    NoActiveSessionError,
    PathNotFoundError,
    PersistenceError,
    TargetNotFoundError,
    TokenClaims,
    ValidationError,
)
from change_monitor.services import MonitorServices, build_services

logger = logging.getLogger(__name__)

# First match wins, so subclasses must precede their bases
ERROR_STATUS_CODES: list[tuple[type[BaseError], int]] = [
    (ValidationError, 400),
    (PathNotFoundError, 400),
    (NoActiveSessionError, 400),
    (TargetNotFoundError, 404),
    (AuthenticationError, 401),
    (PersistenceError, 500),
    (AdapterError, 500),
    (ConfigurationError, 500),
]


def status_code_for(error: BaseError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def create_app(config: MonitorSettings | None = None, services: MonitorServices | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to use (global settings when omitted)
        services: Pre-built services, mainly for tests

    Returns:
        The application; services start and stop with its lifespan
    """
    config = config or get_config()
    services = services or build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.startup()
        try:
            yield
        finally:
            await services.shutdown()

    app = FastAPI(
        title="Change Monitor",
        description="Filesystem change monitoring with real-time notifications",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    _register_error_handlers(app)
    _register_routes(app, services, config)

    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BaseError)
    async def handle_service_error(request: Request, exc: BaseError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.error_code, "message": exc.message, "context": _jsonable(exc.context)},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": "VALIDATION_ERROR", "message": "Invalid request", "context": {"fields": fields}},
        )


def _jsonable(context: dict[str, Any]) -> dict[str, Any]:
    return {key: value if isinstance(value, (str, int, float, bool, list)) else str(value) for key, value in context.items()}


async def _read_json(request: Request, required: bool = True) -> dict[str, Any]:
    """Parse a JSON object body, raising ValidationError for anything else."""
    body = await request.body()
    if not body.strip():
        if required:
            raise ValidationError("Request body is required")
        return {}

    try:
        data = json.loads(body)
    except ValueError as e:
        raise ValidationError(f"Request body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", actual_value=type(data).__name__)
    return data


def _register_routes(app: FastAPI, services: MonitorServices, config: MonitorSettings) -> None:
    """Register all API routes."""

    async def require_token(x_token: str | None = Header(default=None)) -> TokenClaims:
        if not x_token:
            raise ValidationError("token not found", field_name="x-token")
        return services.accounts.authenticate(x_token)

    monitor_guard = [Depends(require_token)] if config.require_auth else []

    @app.post("/config", status_code=201, dependencies=monitor_guard)
    async def save_config(request: Request) -> JSONResponse:
        """Create or update the monitor configuration for an owner."""
        target = await services.targets.upsert(await _read_json(request))
        logger.info("Configuration saved for %s", target.owner_identity)
        return JSONResponse(status_code=201, content={"message": "Configuration saved", "config": target.to_response()})

    @app.get("/config", dependencies=monitor_guard)
    async def get_target(owner_identity: str | None = Query(default=None, alias="ownerIdentity")) -> dict[str, Any]:
        target = await services.targets.find(owner_identity)
        if target is None:
            raise TargetNotFoundError("Configuration not found", owner_identity=owner_identity)
        return target.to_response()

    @app.post("/start", dependencies=monitor_guard)
    async def start_monitoring(request: Request) -> dict[str, Any]:
        """Start watching the configured target (replacing any running session)."""
        data = await _read_json(request, required=False)
        owner_identity = data.get("ownerIdentity", data.get("owner_identity"))
        if owner_identity is not None and not isinstance(owner_identity, str):
            raise ValidationError("ownerIdentity must be a string", field_name="ownerIdentity")

        target = await services.targets.find(owner_identity)
        if target is None:
            raise TargetNotFoundError("Configuration not found", owner_identity=owner_identity)

        status = await services.sessions.start(target)
        return {"message": "Monitoring started", "session": status.to_response()}

    @app.post("/stop", dependencies=monitor_guard)
    async def stop_monitoring() -> dict[str, Any]:
        status = await services.sessions.stop()
        return {"message": "Monitoring stopped", "session": status.to_response()}

    @app.get("/status", dependencies=monitor_guard)
    async def service_status() -> dict[str, Any]:
        return {
            "session": services.sessions.status().to_response(),
            "subscribers": services.connections.get_connection_count(),
            "pipeline": services.pipeline.get_stats(),
        }

    @app.get("/file-changes", dependencies=monitor_guard)
    async def file_changes(limit: int | None = Query(default=None, ge=1)) -> list[dict[str, Any]]:
        """Stored change events, newest first."""
        events = await services.change_log.list_recent(limit)
        return [event.to_message() for event in events]

    @app.post("/register", status_code=201)
    async def register(request: Request) -> JSONResponse:
        account = await services.accounts.register(await _read_json(request))
        return JSONResponse(status_code=201, content={"message": "Registered", "account": account.to_public()})

    @app.post("/login")
    async def login(request: Request) -> dict[str, str]:
        data = await _read_json(request)
        email, password = data.get("email"), data.get("password")
        if not isinstance(email, str) or not isinstance(password, str):
            raise AuthenticationError("Email and password are required", reason="missing_credentials")
        return {"token": await services.accounts.login(email, password)}

    @app.get("/me")
    async def me(claims: TokenClaims = Depends(require_token)) -> dict[str, Any]:
        return claims.model_dump(mode="json")

    @app.websocket("/ws")
    async def change_feed(websocket: WebSocket) -> None:
        """Push one message per change event until the client disconnects."""
        await services.connections.connect(websocket)
        try:
            while True:
                # Client messages are ignored; receiving detects disconnects
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await services.connections.disconnect(websocket)
