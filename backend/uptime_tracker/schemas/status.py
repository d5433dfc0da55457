"""Check-cycle, latest-status and history-chart schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from .service import ServiceRef


class CheckOutcomeResponse(BaseModel):
    """One service's result from a check cycle."""
    service: ServiceRef
    status: str  # up, down
    response_time_ms: int
    recorded: bool = True  # False if the status record could not be written
    details: Optional[str] = None


class CronCheckResponse(BaseModel):
    """Timer-style trigger response."""
    success: bool
    timestamp: datetime
    persistence_failures: int = 0
    results: List[CheckOutcomeResponse]


class LatestStatus(BaseModel):
    """Latest status for a service; unknown until its first probe is stored."""
    service: ServiceRef
    status: str = "unknown"  # up, down, unknown
    response_time_ms: int = 0
    timestamp: Optional[datetime] = None


class LatestStatusResponse(BaseModel):
    success: bool = True
    timestamp: datetime
    results: List[LatestStatus]


class BucketPoint(BaseModel):
    """One bar of the uptime history / one point of the latency chart."""
    start_time: datetime
    end_time: datetime
    status: str  # up, down, unknown
    mean_response_time_ms: float
    uptime_percent: float
    count: int


class BucketHistory(BaseModel):
    """Bucketized history for one service over a display window."""
    service_id: int
    days: float
    bucket_count: int
    interval_minutes: float
    uptime_percent: float
    mean_response_time_ms: float
    buckets: List[BucketPoint]


class StatusOverview(BaseModel):
    """Dashboard overview data."""
    total_services: int
    services_up: int
    services_down: int
    services_unknown: int
    overall_uptime_24h: float
