from __future__ import annotations

import shutil

from fastapi import APIRouter, Depends

from collection_runner.api.dependencies import AppServices, get_request_id, get_services
from collection_runner.config.settings import settings
from collection_runner.core.file_manager import list_json_files
from collection_runner.core.logger import get_logger
from collection_runner.remote.client import COLLECTIONS, ENVIRONMENTS
from collection_runner.schemas.response_schemas import utc_now_iso

router = APIRouter()
logger = get_logger(__name__)


@router.get("/system/health")
async def get_health(services: AppServices = Depends(get_services), request_id: str = Depends(get_request_id)):
    logger.info("api.system.health", request_id=request_id)
    config = services.config_store.current
    workspace = services.workspace
    directories = {
        "collections": services.resolver.directories[COLLECTIONS],
        "environments": services.resolver.directories[ENVIRONMENTS],
        "results": workspace.results_dir,
        "report": workspace.report_dir,
    }
    data_root = workspace.results_dir.parent
    free_gb = round(shutil.disk_usage(data_root).free / (1024**3), 2) if data_root.exists() else None
    return {
        "status": "healthy" if all(path.exists() for path in directories.values()) else "degraded",
        "timestamp": utc_now_iso(),
        "mode": "remote" if config.use_api_mode else "local",
        "remote_configured": bool(config.api_key and config.workspace_id),
        "remote_base_url": settings.remote_api_base_url,
        "directories": {name: {"path": str(path), "exists": path.exists()} for name, path in directories.items()},
        "cached": {
            "collections": len(list_json_files(directories["collections"])),
            "environments": len(list_json_files(directories["environments"])),
        },
        "last_run_artifacts": len(workspace.artifacts()),
        "free_gb": free_gb,
    }
