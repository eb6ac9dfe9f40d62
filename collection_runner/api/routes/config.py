from __future__ import annotations

from fastapi import APIRouter, Depends

from collection_runner.api.dependencies import get_config_store, get_request_id
from collection_runner.config.store import ConfigStore, RunnerConfig
from collection_runner.core.logger import get_logger
from collection_runner.schemas.request_schemas import ConfigUpdateRequest

router = APIRouter()
logger = get_logger(__name__)


@router.get("/config")
async def get_config(store: ConfigStore = Depends(get_config_store)):
    return store.current.to_wire()


@router.post("/config")
async def post_config(
    request: ConfigUpdateRequest,
    store: ConfigStore = Depends(get_config_store),
    request_id: str = Depends(get_request_id),
):
    logger.info("api.config.update", request_id=request_id, use_api_mode=request.use_api)
    store.replace(
        RunnerConfig(
            api_key=request.api_key,
            workspace_id=request.workspace_id,
            use_api_mode=request.use_api,
        )
    )
    return {"success": True}
