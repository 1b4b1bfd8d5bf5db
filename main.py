"""
Signals & Feed API entry point.

Creates the FastAPI application and wires together CORS, error handlers,
the MongoDB connection and the auth, signals and feed routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import database
from auth import router as auth_router
from config import get_settings
from errors import register_error_handlers
from feed import router as feed_router
from logging_config import configure_logging
from security import TokenService
from signals import router as signals_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Refuse to start without a signing secret
    TokenService(settings.jwt_secret)

    if database.db is None:
        database.connect(settings)
    database.ensure_indexes()
    yield
    database.close()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.project_name, version=settings.version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(signals_router)
    app.include_router(feed_router)

    @app.get("/")
    def read_root():
        return {"message": f"{settings.project_name} is running"}

    @app.get("/api/health")
    def health():
        response = {
            "backend": "running",
            "database": "not connected",
            "collections": [],
        }
        if database.db is not None:
            try:
                response["collections"] = sorted(database.db.list_collection_names())
                response["database"] = "connected"
            except Exception as e:
                logger.warning("Database health check failed: %s", type(e).__name__)
                response["database"] = "error"
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
