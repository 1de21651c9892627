"""
BlueOlive API entry point.

Startup builds the long-lived collaborators (object storage, game analyzer,
dispatcher) once and keeps them on ``app.state``; request handlers get them
through ``blueolive.api.v1.deps``.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from blueolive.config import settings
from blueolive.api.v1.router import api_router, worker_router
from blueolive.api.v1.helpers.authentication import JWTAuthenticationProvider
from blueolive.core.dispatch import build_dispatcher
from blueolive.core.game_analyzer import GameAnalyzer
from blueolive.core.storage import build_storage
from blueolive.db.session import get_session_local
from logging import getLogger, Filter
import logging

logger = getLogger(__name__)
logger.setLevel(logging.INFO)


class HealthCheckFilter(Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find("/health") == -1


logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())


app = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)


@app.on_event("startup")
async def startup_event():
    logger.info("--- Starting BlueOlive API ---")

    app.state.authentication_provider = JWTAuthenticationProvider()
    app.state.storage = build_storage(settings)
    app.state.analyzer = GameAnalyzer(settings.analysis_model or None)
    app.state.dispatcher = build_dispatcher(
        settings, get_session_local(), app.state.analyzer
    )

    logger.info(
        f"--- BlueOlive startup completed (dispatch={settings.dispatch_mode}, "
        f"storage={settings.storage_backend}) ---"
    )


@app.on_event("shutdown")
async def shutdown_event():
    try:
        logger.info("--- Server shutting down! ---")

        dispatcher = getattr(app.state, "dispatcher", None)
        if dispatcher is not None:
            await dispatcher.drain()
            logger.info("--- In-flight analyses finished. ---")

        from blueolive.db.session import dispose_engine

        await dispose_engine()
        logger.info("--- Database connections closed. ---")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")
app.include_router(worker_router)


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.app_name}"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
