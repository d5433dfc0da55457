"""Service CRUD, history and uptime-bar endpoints."""
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..config import Settings
from ..database import utcnow
from ..dependencies import get_registry, get_settings, get_store
from ..schemas.service import (
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    StatusRecordResponse,
)
from ..schemas.status import BucketHistory, BucketPoint
from ..services.bucketizer import BucketWindow, summarize
from ..services.service_registry import ServiceRegistry
from ..services.status_store import StatusStore

router = APIRouter(prefix="/api/services", tags=["services"])

# Upper bound on a single history page
HISTORY_MAX_LIMIT = 50000


@router.get("", response_model=List[ServiceResponse])
async def list_services(registry: ServiceRegistry = Depends(get_registry)):
    """List all services, newest first."""
    return await registry.list_services()


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(service: ServiceCreate, registry: ServiceRegistry = Depends(get_registry)):
    """Register a new service."""
    return await registry.create_service(service.name, service.url)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, registry: ServiceRegistry = Depends(get_registry)):
    return await registry.get_service(service_id)


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    update: ServiceUpdate,
    registry: ServiceRegistry = Depends(get_registry),
):
    """Update a service's name and URL. History is kept."""
    return await registry.update_service(service_id, update.name, update.url)


@router.delete("/{service_id}")
async def delete_service(service_id: int, registry: ServiceRegistry = Depends(get_registry)):
    """Delete a service together with its whole status history."""
    await registry.delete_service(service_id)
    return {"message": "Service deleted successfully"}


@router.get("/{service_id}/status", response_model=List[StatusRecordResponse])
async def get_status_history(
    service_id: int,
    limit: Optional[int] = Query(default=None, ge=1, le=HISTORY_MAX_LIMIT),
    days: Optional[int] = Query(default=None, ge=1, le=3650),
    registry: ServiceRegistry = Depends(get_registry),
    store: StatusStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Status records from the last ``days`` days, newest first, capped at ``limit``."""
    await registry.get_service(service_id)
    
    days = days or settings.history_default_days
    start_time = utcnow() - timedelta(days=days)
    return await store.find_by_service_in_range(
        service_id,
        start_time=start_time,
        limit=limit or settings.history_default_limit,
    )


@router.get("/{service_id}/buckets", response_model=BucketHistory)
async def get_bucket_history(
    service_id: int,
    days: float = Query(default=7, gt=0, le=365),
    buckets: int = Query(default=140, ge=1, le=10000),
    registry: ServiceRegistry = Depends(get_registry),
    store: StatusStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Uptime bars and latency points for the last ``days`` days.
    
    ``buckets`` is normally derived by the client from the available width.
    """
    await registry.get_service(service_id)
    
    window = BucketWindow(days, buckets, offset_minutes=settings.bucket_anchor_offset_minutes)
    async for record in store.iter_window(service_id, window.start_time, window.end_time):
        window.add(record)
    time_buckets = window.buckets
    summary = summarize(time_buckets)
    
    return BucketHistory(
        service_id=service_id,
        days=days,
        bucket_count=buckets,
        interval_minutes=(days * 24 * 60) / buckets,
        uptime_percent=summary.uptime_percent,
        mean_response_time_ms=summary.mean_response_time_ms,
        buckets=[
            BucketPoint(
                start_time=b.start_time,
                end_time=b.end_time,
                status=b.status,
                mean_response_time_ms=round(b.mean_response_time_ms, 2),
                uptime_percent=round(b.uptime_percent, 2),
                count=b.count,
            )
            for b in time_buckets
        ],
    )
