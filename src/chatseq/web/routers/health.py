import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from chatseq.core.modules.sequence.models import ConsistencyReport, ConsistencyStatus
from chatseq.errors import SequenceError
from chatseq.utils import now
from chatseq.web.deps import AppDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@router.get(
    "/health/counters",
    summary="Sequence counter consistency",
    description=(
        "Compare the counters of a sample of scopes against the highest persisted numbers. "
        "Read-only. Returns 503 with status `warning` if any counter lags behind."
    ),
    operation_id="checkCounters",
    responses={
        200: {"description": "All sampled counters are consistent", "model": ConsistencyReport},
        503: {"description": "Drift detected", "model": ConsistencyReport},
        500: {"description": "A store could not be read"},
    },
)
async def check_counters(app: AppDep) -> JSONResponse:
    try:
        report = await app.check_counters()
    except SequenceError as e:
        logger.error("Counter consistency check failed: %s", e)
        return JSONResponse(
            status_code=500, content={"status": "error", "error": str(e), "checked_at": now().isoformat()}
        )
    status_code = 200 if report.status == ConsistencyStatus.HEALTHY else 503
    return JSONResponse(status_code=status_code, content=report.model_dump(mode="json"))
