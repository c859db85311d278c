# biboop/main.py
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from . import __version__
from .config import Settings, get_settings
from .pin_store import PinStore
from .routers import pin as pin_router
from .services.pins import build_pin_service
from .services.sweeper import StaleSweeper
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(app.state.settings.LOG_LEVEL)
    app.state.sweeper.start()
    logger.info("Biboop %s ready", __version__)
    try:
        yield
    finally:
        app.state.sweeper.stop()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Biboop", version=__version__, lifespan=lifespan)

    store = PinStore()
    app.state.settings = settings
    app.state.store = store
    app.state.pin_service = build_pin_service(store, settings)
    app.state.sweeper = StaleSweeper(
        store,
        max_age=timedelta(seconds=settings.STALE_AGE_SECONDS),
        interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    app.include_router(pin_router.router)

    @app.get("/health", response_class=PlainTextResponse)
    def health():
        return "All good."

    return app
