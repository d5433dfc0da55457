"""Latest-status and overview endpoints for the dashboard and status page."""
from datetime import timedelta

from fastapi import APIRouter, Depends

from ..database import utcnow
from ..dependencies import get_registry, get_store
from ..models.status_record import STATUS_UP, STATUS_DOWN, STATUS_UNKNOWN
from ..schemas.service import ServiceRef
from ..schemas.status import LatestStatus, LatestStatusResponse, StatusOverview
from ..services.service_registry import ServiceRegistry
from ..services.status_store import StatusStore

router = APIRouter(prefix="/api/status", tags=["status"])

# Enough for one probe a minute over 24 hours
UPTIME_24H_RECORD_LIMIT = 24 * 60 * 2


@router.get("/latest", response_model=LatestStatusResponse)
async def get_latest_status(
    registry: ServiceRegistry = Depends(get_registry),
    store: StatusStore = Depends(get_store),
):
    """Latest status per service; ``unknown``/0 for services never probed."""
    services = await registry.list_services()
    latest = await store.find_latest_for_services(s.id for s in services)
    
    results = []
    for service in services:
        record = latest.get(service.id)
        entry = LatestStatus(service=ServiceRef.model_validate(service))
        if record:
            entry.status = record.status
            entry.response_time_ms = record.response_time_ms
            entry.timestamp = record.timestamp
        results.append(entry)
    
    return LatestStatusResponse(timestamp=utcnow(), results=results)


@router.get("/overview", response_model=StatusOverview)
async def get_status_overview(
    registry: ServiceRegistry = Depends(get_registry),
    store: StatusStore = Depends(get_store),
):
    """Dashboard header: counts by current status and mean 24h uptime."""
    services = await registry.list_services()
    latest = await store.find_latest_for_services(s.id for s in services)
    
    counts = {STATUS_UP: 0, STATUS_DOWN: 0, STATUS_UNKNOWN: 0}
    for service in services:
        record = latest.get(service.id)
        counts[record.status if record else STATUS_UNKNOWN] += 1
    
    cutoff_24h = utcnow() - timedelta(hours=24)
    uptimes = []
    for service in services:
        if service.id not in latest:
            continue
        records = await store.find_by_service_in_range(
            service.id, start_time=cutoff_24h, limit=UPTIME_24H_RECORD_LIMIT
        )
        if records:
            up_count = sum(1 for r in records if r.status == STATUS_UP)
            uptimes.append((up_count / len(records)) * 100)
    
    overall_uptime = (sum(uptimes) / len(uptimes)) if uptimes else 0
    
    return StatusOverview(
        total_services=len(services),
        services_up=counts[STATUS_UP],
        services_down=counts[STATUS_DOWN],
        services_unknown=counts[STATUS_UNKNOWN],
        overall_uptime_24h=round(overall_uptime, 2),
    )
