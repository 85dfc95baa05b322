"""HTTP interface for registering sessions."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

import synckeeper
from synckeeper.config import get_settings
from synckeeper.exceptions import RegistrationError
from synckeeper.keepalive.handler import KeepaliveHandler, SyncCheckHandler
from synckeeper.keepalive.scheduler import KeepaliveScheduler
from synckeeper.keepalive.state import SessionRegistry
from synckeeper.logging import get_logger
from synckeeper.registration import RegistrationPayload, register_credential

LOG = get_logger(__name__)

REGISTER_PATH = "/register-new-credential"


def build_scheduler(handler: KeepaliveHandler | None = None) -> KeepaliveScheduler:
    """Build a scheduler wired to the configured synccheck handler."""
    if handler is None:
        settings = get_settings()
        handler = SyncCheckHandler(
            user_agent=settings.user_agent,
            timeout=settings.probe_timeout,
        )
    return KeepaliveScheduler(SessionRegistry(), handler)


def _rejected() -> JSONResponse:
    return JSONResponse(status_code=400, content={"result": False})


def create_app(scheduler: KeepaliveScheduler | None = None) -> FastAPI:
    """Create the registration API.

    Args:
        scheduler: Scheduler to register sessions with. Built from settings
            when omitted.

    Returns:
        FastAPI application.
    """
    keepalive = scheduler if scheduler is not None else build_scheduler()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        yield
        await keepalive.aclose()
        if isinstance(keepalive.handler, SyncCheckHandler):
            await keepalive.handler.aclose()

    app = FastAPI(title="synckeeper", version=synckeeper.__version__, lifespan=lifespan)
    app.state.scheduler = keepalive

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        LOG.info("registration_invalid", path=request.url.path, errors=len(exc.errors()))
        return _rejected()

    @app.exception_handler(RegistrationError)
    async def _registration_failed(request: Request, exc: RegistrationError) -> JSONResponse:
        LOG.info("registration_rejected", path=request.url.path, error=str(exc))
        return _rejected()

    @app.get("/ping", response_class=PlainTextResponse)
    async def ping() -> str:
        return "pong"

    @app.post(REGISTER_PATH)
    async def register_new_credential(payload: RegistrationPayload) -> dict[str, bool]:
        register_credential(keepalive, payload)
        return {"result": True}

    return app
