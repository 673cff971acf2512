"""ASGI entrypoint exposing health and admin job triggers."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from itemize_jobs.api.v1.router import get_api_router
from itemize_jobs.core.config import get_config
from itemize_jobs.core.startup import bootstrap


@asynccontextmanager
async def lifespan(_app: FastAPI):
    bootstrap()
    yield


def create_app() -> FastAPI:
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION, lifespan=lifespan)
    app.include_router(get_api_router())

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn itemize_jobs.main:app`.
app = create_app()
