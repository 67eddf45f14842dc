"""
Device Status Router

Trigger endpoint for the scheduled evaluation pass:
- POST /check - run one pass at the current time and return the counts

Called by an external cron (once per minute).
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..common.logging_setup import get_service_logger
from ..dependencies.auth import require_cron_secret
from ..services.evaluation import EvaluationPass, create_evaluation_pass

logger = get_service_logger("router.device_status")

router = APIRouter()


# ============================================
# SCHEMAS
# ============================================

class StageResult(BaseModel):
    """Counts for one detector stage"""
    checked: int
    notified: int


class BatteryStageResult(StageResult):
    """Battery stage also reports re-armed alerts"""
    rearmed: int = 0


class CheckResults(BaseModel):
    """Summary of one evaluation pass"""
    offline: StageResult
    battery_low: BatteryStageResult
    online: StageResult
    marked_offline: int


class CheckResponse(BaseModel):
    """Check response"""
    success: bool
    results: CheckResults


# ============================================
# DEPENDENCIES
# ============================================

def get_evaluation_pass() -> EvaluationPass:
    """Dependency for the wired evaluation pass (overridable in tests)."""
    return create_evaluation_pass()


# ============================================
# ENDPOINTS
# ============================================

@router.post(
    "/check",
    response_model=CheckResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def run_status_check(
    evaluation: EvaluationPass = Depends(get_evaluation_pass),
):
    """
    Run one device status evaluation pass.

    Returns per-stage checked/notified counts. On an unexpected failure the
    pass aborts and a 500 is returned; the next trigger simply retries.
    """
    now = datetime.now(timezone.utc)
    try:
        summary = await evaluation.run(now)
    except Exception as e:
        logger.error(f"Error checking device status: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return {"success": True, "results": summary.to_dict()}
