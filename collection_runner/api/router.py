from fastapi import APIRouter

from collection_runner.api.routes.catalog import router as catalog_router
from collection_runner.api.routes.config import router as config_router
from collection_runner.api.routes.runs import router as runs_router
from collection_runner.api.routes.system import router as system_router

api_router = APIRouter()
api_router.include_router(config_router, tags=["config"])
api_router.include_router(catalog_router, tags=["catalog"])
api_router.include_router(runs_router, tags=["runs"])
api_router.include_router(system_router, tags=["system"])
