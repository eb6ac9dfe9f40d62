from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from collection_runner.api.dependencies import AppServices, get_request_id, get_services
from collection_runner.core.errors import ReportGenerationError
from collection_runner.core.logger import get_logger
from collection_runner.schemas.request_schemas import RunRequest
from collection_runner.schemas.response_schemas import error_body, run_complete_body

router = APIRouter()
logger = get_logger(__name__)


@router.post("/run")
async def post_run(
    request: RunRequest,
    services: AppServices = Depends(get_services),
    request_id: str = Depends(get_request_id),
):
    # Snapshot: a config update during the run does not affect it.
    config = services.config_store.current
    logger.info("api.run.start", request_id=request_id, collections=len(request.files), parallel=request.parallel)
    try:
        summary = await services.orchestrator.run_all(request, config)
    except ReportGenerationError as exc:
        logger.error("api.run.report_failed", request_id=request_id, error=str(exc))
        return JSONResponse(status_code=500, content=error_body("Allure generation failed"))
    logger.info(
        "api.run.end",
        request_id=request_id,
        report_url=summary.report_url,
        outcomes=[(o.name, o.status, o.artifacts) for o in summary.outcomes],
    )
    return run_complete_body(summary.report_url)
