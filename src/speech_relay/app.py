"""Application factory for the speech relay service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from .config import PROJECT_ROOT, Settings, get_settings
from .routers.relay import router as relay_router
from .services.nim_client import NimSpeechClient
from .services.speech_backend import SpeechBackend

HEALTH_MESSAGE = "NVIDIA NIM Speech-to-Speech Backend Running"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL / LOG_FILE environment variables."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("speech_relay").setLevel(log_level)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(log_level)

    # httpx logs every request at INFO
    noisy_level = log_level if log_level <= logging.DEBUG else logging.WARNING
    logging.getLogger("httpx").setLevel(noisy_level)
    logging.getLogger("httpcore").setLevel(noisy_level)


def _resolve_static_dir(path: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and container mounts).
    return path if path.is_absolute() else (PROJECT_ROOT / path).resolve()


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[SpeechBackend] = None,
) -> FastAPI:
    _configure_logging()

    settings = settings or get_settings()
    logger = logging.getLogger(__name__)

    owned_client: Optional[NimSpeechClient] = None
    if backend is None:
        owned_client = NimSpeechClient(settings)
        backend = owned_client

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting NVIDIA NIM Speech-to-Speech Backend")
        try:
            yield
        finally:
            if owned_client is not None:
                try:
                    await owned_client.aclose()
                except Exception as exc:
                    logger.warning("Error closing NIM client: %s", exc)

    app = FastAPI(
        title="Speech Relay",
        version="0.1.0",
        description="Real-time speech-to-speech relay over WebSocket backed by NVIDIA NIM.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.speech_backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(relay_router)

    @app.get("/api/health", tags=["health"], response_class=PlainTextResponse)
    async def healthcheck() -> str:
        return HEALTH_MESSAGE

    # Mounted last so it never shadows the API routes
    static_dir = _resolve_static_dir(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.info(f"Static directory {static_dir} not found; skipping static files")

    return app


__all__ = ["create_app"]
