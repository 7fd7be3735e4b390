import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .bootstrap import SyncSession
from .config import get_settings
from .logging_config import configure_logging
from .routes import router as goals_router

logger = logging.getLogger(__name__)


def create_app(session: Optional[SyncSession] = None) -> FastAPI:
    """Build the HTTP app around ``session``.

    A supplied session is used as-is and is expected to be started by the
    caller. Without one, a session is built from settings and started for
    the configured user on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.session is not None:
            yield
            return
        settings = get_settings()
        owned = SyncSession.from_settings(settings)
        await owned.start(settings.user_id)
        app.state.session = owned
        try:
            yield
        finally:
            await owned.stop()
            owned.close()
            app.state.session = None

    app = FastAPI(title="Goal Sync Service", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.session = session
    app.include_router(goals_router)

    @app.get("/healthz")
    def health(request: Request) -> Dict[str, str]:
        current = request.app.state.session
        return {
            "status": "ok",
            "partition": "active" if current is not None and current.started else "none",
        }

    return app


def build_default_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    logger.info("Goal sync starting with local store: %s", settings.local_store_path)
    logger.info("Remote document store configured: %s", settings.remote_enabled)
    return create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(build_default_app(), host=settings.http_host, port=settings.http_port, log_config=None)
