"""Draftstore Backend Application.

This is the main entry point for the Draftstore file service.
Browser upload widgets post files here; every upload lands in the draft area
until a form submission promotes it, and unclaimed drafts are removed by the
``draftstore cleanup-drafts`` maintenance command.

Modules:
    - files: upload, download and delete endpoints plus the draft lifecycle
    - storage: content-addressed blob store
    - config: YAML settings (draftstore.settings.yaml)
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from draftstore.config import get_config
from draftstore.files.router import router as files_router
from draftstore.files.service import FileService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# multipart logs every parsed form part at DEBUG
logging.getLogger("multipart").setLevel(logging.WARNING)
logging.getLogger("python_multipart").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # `logging.level: "debug"` in draftstore.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    service = FileService.get_instance()
    logger.info(
        "Serving uploads from %s (default widget: %s)",
        service.store.root,
        config.upload.ui_library,
    )

    yield  # Application runs here

    # Shutdown
    FileService.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Draftstore API",
    description="Draft-aware file upload service with content-addressed storage",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(files_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
