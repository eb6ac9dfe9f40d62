from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from collection_runner.api.dependencies import build_services
from collection_runner.api.middleware import register_middleware
from collection_runner.api.router import api_router
from collection_runner.config.settings import settings
from collection_runner.core.file_manager import ensure_dirs
from collection_runner.core.logger import get_logger
from collection_runner.core.logging import configure_logging
from collection_runner.core.report_publisher import ReportPublisher
from collection_runner.runner.events import CollectionRunner

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    config = app.state.services.config_store.current
    logger.info(
        "app.startup",
        env=settings.APP_ENV,
        version=VERSION,
        port=settings.PORT,
        use_api_mode=config.use_api_mode,
        public_base_url=settings.public_base_url,
    )
    yield
    logger.info("app.shutdown")


def create_app(
    runner: CollectionRunner | None = None,
    publisher: ReportPublisher | None = None,
    remote_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    ensure_dirs(
        [
            settings.collections_path,
            settings.environments_path,
            settings.results_path,
            settings.report_path,
            settings.public_path,
        ]
    )
    app = FastAPI(
        title="Collection Runner",
        version=VERSION,
        description="Local control plane for running API-test collections and publishing reports",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.state.services = build_services(runner=runner, publisher=publisher, remote_transport=remote_transport)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_middleware(app)
    app.include_router(api_router)
    app.mount("/allure-report", StaticFiles(directory=settings.report_path, html=True, check_dir=False), name="report")
    app.mount("/", StaticFiles(directory=settings.public_path, html=True, check_dir=False), name="ui")
    return app


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
