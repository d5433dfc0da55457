"""Bucketizer - folds a raw status series into fixed-width display buckets.

The window ``[anchor - window_days, anchor)`` is split into ``bucket_count``
contiguous half-open buckets, oldest first. ``anchor`` sits a few minutes
before "now" so the newest bucket is likely to hold a probe rather than look
empty because the current cycle has not written yet.

Within a bucket ``down`` dominates ``up``: one failed probe marks the whole
bucket down, whatever order the records arrive in.
"""
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Protocol

from ..database import utcnow
from ..models.status_record import STATUS_UP, STATUS_DOWN, STATUS_UNKNOWN

DEFAULT_ANCHOR_OFFSET_MINUTES = 10


class StatusSample(Protocol):
    timestamp: datetime
    status: str
    response_time_ms: int


@dataclass
class TimeBucket:
    """Aggregate of the records falling in ``[start_time, end_time)``."""
    start_time: datetime
    end_time: datetime
    status: str = STATUS_UNKNOWN
    count: int = 0
    up_count: int = 0
    total_response_time_ms: int = 0
    
    @property
    def mean_response_time_ms(self) -> float:
        return self.total_response_time_ms / self.count if self.count else 0
    
    @property
    def uptime_percent(self) -> float:
        return (self.up_count / self.count) * 100 if self.count else 0
    
    def add(self, status: str, response_time_ms: int) -> None:
        if status == STATUS_DOWN:
            self.status = STATUS_DOWN
        elif status == STATUS_UP:
            self.up_count += 1
            if self.status == STATUS_UNKNOWN:
                self.status = STATUS_UP
        self.total_response_time_ms += response_time_ms
        self.count += 1


@dataclass
class BucketSummary:
    """Record-weighted totals across a bucket sequence."""
    uptime_percent: float
    mean_response_time_ms: float
    record_count: int


class BucketWindow:
    """Empty buckets for a display window, filled one record at a time.
    
    Bucket boundaries are computed from the anchor (not by accumulating a
    width) so the buckets always tile the window exactly.
    """
    
    def __init__(
        self,
        window_days: float,
        bucket_count: int,
        now: Optional[datetime] = None,
        offset_minutes: float = DEFAULT_ANCHOR_OFFSET_MINUTES,
    ):
        if bucket_count < 1:
            raise ValueError("bucket_count must be at least 1")
        if window_days <= 0:
            raise ValueError("window_days must be positive")
        
        self.end_time = (now or utcnow()) - timedelta(minutes=offset_minutes)
        window = timedelta(days=window_days)
        self.start_time = self.end_time - window
        
        # boundaries[i] is the start of bucket i; boundaries[-1] == end_time
        self.boundaries = [
            self.end_time - window * (bucket_count - i) / bucket_count
            for i in range(bucket_count + 1)
        ]
        self.buckets = [
            TimeBucket(start_time=self.boundaries[i], end_time=self.boundaries[i + 1])
            for i in range(bucket_count)
        ]
    
    def add(self, record: StatusSample) -> bool:
        """Fold one record in; False if it falls outside the window."""
        index = locate_bucket(self.boundaries, record.timestamp)
        if index is None:
            return False
        self.buckets[index].add(record.status, record.response_time_ms)
        return True


def bucketize(
    records: Iterable[StatusSample],
    window_days: float,
    bucket_count: int,
    now: Optional[datetime] = None,
    offset_minutes: float = DEFAULT_ANCHOR_OFFSET_MINUTES,
) -> List[TimeBucket]:
    """Aggregate ``records`` into exactly ``bucket_count`` buckets.
    
    Records outside the window are ignored; input order does not matter.
    """
    window = BucketWindow(window_days, bucket_count, now=now, offset_minutes=offset_minutes)
    for record in records:
        window.add(record)
    return window.buckets


def locate_bucket(boundaries: List[datetime], timestamp: datetime) -> Optional[int]:
    """Index of the half-open bucket containing ``timestamp``, or None."""
    if timestamp < boundaries[0] or timestamp >= boundaries[-1]:
        return None
    return bisect_right(boundaries, timestamp) - 1


def summarize(buckets: Iterable[TimeBucket]) -> BucketSummary:
    """Overall uptime and mean latency, weighted by record count."""
    count = up = total = 0
    for bucket in buckets:
        count += bucket.count
        up += bucket.up_count
        total += bucket.total_response_time_ms
    return BucketSummary(
        uptime_percent=round((up / count) * 100, 2) if count else 0,
        mean_response_time_ms=round(total / count, 2) if count else 0,
        record_count=count,
    )
