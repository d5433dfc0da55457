"""Pydantic schemas for API request/response models."""
from .service import (
    ServiceCreate,
    ServiceUpdate,
    ServiceRef,
    ServiceResponse,
    StatusRecordResponse,
)
from .status import (
    CheckOutcomeResponse,
    CronCheckResponse,
    LatestStatus,
    LatestStatusResponse,
    BucketPoint,
    BucketHistory,
    StatusOverview,
)

__all__ = [
    "ServiceCreate",
    "ServiceUpdate",
    "ServiceRef",
    "ServiceResponse",
    "StatusRecordResponse",
    "CheckOutcomeResponse",
    "CronCheckResponse",
    "LatestStatus",
    "LatestStatusResponse",
    "BucketPoint",
    "BucketHistory",
    "StatusOverview",
]
