"""Services for probing, scheduling, storage and aggregation."""
from .bucketizer import bucketize, summarize, TimeBucket
from .prober import ProberService, ProbeResult
from .scheduler import SchedulerService, CheckOutcome, CycleReport
from .service_registry import ServiceRegistry
from .status_store import StatusStore

__all__ = [
    "bucketize",
    "summarize",
    "TimeBucket",
    "ProberService",
    "ProbeResult",
    "SchedulerService",
    "CheckOutcome",
    "CycleReport",
    "ServiceRegistry",
    "StatusStore",
]
