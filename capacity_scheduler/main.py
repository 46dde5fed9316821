from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from capacity_scheduler.config import get_settings
from capacity_scheduler.dependencies.services import get_store_client_cached
from capacity_scheduler.health import router as health_router
from capacity_scheduler.mcp_server import mcp
from capacity_scheduler.tools.appointment import router as appointment_router
from capacity_scheduler.tools.capacity import router as capacity_router
from capacity_scheduler.tools.voice import router as voice_router


def configure_logging(level: str = "INFO") -> None:
    """Install the application log format, or apply ``level`` to existing handlers."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level.upper(),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(level.upper())


configure_logging(get_settings().log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    settings = get_settings()
    settings_snapshot = settings.model_dump(exclude={"store_token"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    client = get_store_client_cached()
    logger.info("Application startup complete.")

    try:
        yield
    finally:
        logger.info("Closing store client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointment_router, prefix="/tools/appointment")
app.include_router(capacity_router, prefix="/tools/capacity")
app.include_router(voice_router, prefix="/tools/voice")
app.include_router(health_router)

# Streamable HTTP transport for voice-agent tool calls
app.mount("/mcp", mcp.streamable_http_app())
