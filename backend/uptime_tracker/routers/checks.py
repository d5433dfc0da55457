"""Check-cycle triggers: on-demand and timer-style (cron)."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..config import Settings
from ..database import utcnow
from ..dependencies import get_scheduler, get_settings
from ..errors import TrackerError
from ..schemas.service import ServiceRef
from ..schemas.status import CheckOutcomeResponse, CronCheckResponse
from ..services.scheduler import CheckOutcome, SchedulerService

router = APIRouter(prefix="/api", tags=["checks"])


def _to_response(outcome: CheckOutcome) -> CheckOutcomeResponse:
    return CheckOutcomeResponse(
        service=ServiceRef(id=outcome.service_id, name=outcome.name, url=outcome.url),
        status=outcome.status,
        response_time_ms=outcome.response_time_ms,
        recorded=outcome.recorded,
        details=outcome.details,
    )


@router.post("/check", response_model=List[CheckOutcomeResponse])
async def run_check(scheduler: SchedulerService = Depends(get_scheduler)):
    """Probe every service now and return one outcome per service."""
    report = await scheduler.run_check_cycle()
    return [_to_response(outcome) for outcome in report.outcomes]


@router.get("/cron/check", response_model=CronCheckResponse)
async def run_cron_check(
    key: Optional[str] = Query(default=None),
    scheduler: SchedulerService = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
):
    """Entry point for external cron jobs; guarded by CRON_API_KEY when set."""
    if settings.cron_api_key and key != settings.cron_api_key:
        raise TrackerError("unauthorized", "Invalid or missing cron key", status=401)
    
    report = await scheduler.run_check_cycle()
    return CronCheckResponse(
        success=report.persistence_failures == 0,
        timestamp=report.finished_at or utcnow(),
        persistence_failures=report.persistence_failures,
        results=[_to_response(outcome) for outcome in report.outcomes],
    )
