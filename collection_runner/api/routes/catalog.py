from __future__ import annotations

import asyncio
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from collection_runner.api.dependencies import AppServices, get_request_id, get_services
from collection_runner.core.errors import RemoteFetchError
from collection_runner.core.file_manager import list_json_files
from collection_runner.core.logger import get_logger
from collection_runner.remote.client import COLLECTIONS, ENVIRONMENTS
from collection_runner.schemas.response_schemas import error_body, resource_listing

router = APIRouter()
logger = get_logger(__name__)


async def _list_resources(services: AppServices, kind: str, local_dir: Path, request_id: str):
    config = services.config_store.current
    logger.info("api.catalog.list", request_id=request_id, kind=kind, use_api_mode=config.use_api_mode)
    if not config.use_api_mode:
        names = await asyncio.to_thread(list_json_files, local_dir)
        return resource_listing([(name, None) for name in names])
    try:
        async with services.remote_factory(config) as client:
            items = await client.list_resources(kind)
    except RemoteFetchError as exc:
        logger.warning("api.catalog.remote_failed", request_id=request_id, kind=kind, error=str(exc))
        return JSONResponse(status_code=500, content=error_body("API error"))
    return resource_listing([(item["name"], item["uid"]) for item in items])


@router.get("/collections")
async def get_collections(services: AppServices = Depends(get_services), request_id: str = Depends(get_request_id)):
    return await _list_resources(services, COLLECTIONS, services.resolver.directories[COLLECTIONS], request_id)


@router.get("/environments")
async def get_environments(services: AppServices = Depends(get_services), request_id: str = Depends(get_request_id)):
    return await _list_resources(services, ENVIRONMENTS, services.resolver.directories[ENVIRONMENTS], request_id)


@router.post("/refresh")
async def post_refresh(services: AppServices = Depends(get_services), request_id: str = Depends(get_request_id)):
    config = services.config_store.current
    logger.info("api.catalog.refresh", request_id=request_id, workspace_id=config.workspace_id)
    try:
        return await services.refresher.refresh(config)
    except (RemoteFetchError, OSError) as exc:
        logger.error("api.catalog.refresh_failed", request_id=request_id, error=str(exc))
        return JSONResponse(status_code=500, content=error_body("Refresh failed", updated=False))
