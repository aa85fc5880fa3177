"""FastAPI application factory and configuration.

This is the HTTP gateway automation tools call. It owns the WhatsApp session
supervisor for the lifetime of the process.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .routes import router
from auth.store import CredentialStore
from config.settings import Settings, get_settings
from messaging import (
    AttachmentStore,
    CommandResponder,
    DestinationResolver,
    GatewayError,
    OutboundDispatcher,
    SessionSupervisor,
    TransportFactory,
)

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging once per process."""
    # If handlers exist (hot reload, test runner), keep them
    if logging.root.handlers:
        return
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8", mode="a"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=handlers,
    )

    # Suppress noisy uvicorn logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for log correlation."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _default_transport_factory(store: CredentialStore) -> Optional[TransportFactory]:
    try:
        from messaging.whatsapp import create_transport_factory
    except ImportError as e:
        logger.warning(f"WhatsApp transport unavailable (install the 'whatsapp' extra): {e}")
        return None
    return create_transport_factory(store.database_path)


def create_app(
    settings: Optional[Settings] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment.
        transport_factory: Builds transport sessions; defaults to WhatsApp.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting zapgate...")

        credential_store = CredentialStore(settings.auth_dir)
        attachments = AttachmentStore(settings.upload_dir)
        factory = transport_factory or _default_transport_factory(credential_store)

        supervisor = SessionSupervisor(factory, credential_store)
        if settings.enable_ping_command:
            supervisor.on_message(CommandResponder(supervisor))
        resolver = DestinationResolver(supervisor)
        dispatcher = OutboundDispatcher(supervisor, resolver, attachments)

        # Store in app state
        app.state.settings = settings
        app.state.credential_store = credential_store
        app.state.attachments = attachments
        app.state.supervisor = supervisor
        app.state.resolver = resolver
        app.state.dispatcher = dispatcher

        if factory is not None:
            await supervisor.start()
        else:
            logger.error("No transport configured; the gateway will never become ready")

        yield

        # Cleanup
        await supervisor.stop()
        logger.info("Server shutting down...")

    app = FastAPI(
        title="zapgate",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Add request ID middleware for log correlation
    app.add_middleware(RequestIDMiddleware)

    app.include_router(router)

    # Exception handlers
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Translate gateway errors to their HTTP status."""
        if exc.status_code >= 500:
            logger.error(f"Gateway Error: {type(exc).__name__} - {exc.message}")
        else:
            logger.info(f"Rejected request: {type(exc).__name__} - {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handle unexpected errors without crashing the process."""
        logger.exception(f"General Error: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc) or "Unexpected error"})

    return app


# Default app instance for uvicorn
app = create_app()
