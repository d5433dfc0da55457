"""Scheduler service - runs check cycles on demand and on a timer.

A check cycle is a fan-out/fan-in over every registered service:
- one task per service, all launched together (optionally capped by a semaphore)
- each task probes, then appends its own status record immediately
- the cycle returns only after every task has finished (join barrier)

A probe failure is data (a ``down`` record), never an error. A failed write
for one service is logged and reported on that outcome (``recorded=False``)
without affecting the other services or failing the cycle.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..database import utcnow
from ..errors import TrackerError
from ..models import Service
from ..models.status_record import STATUS_UP
from .prober import ProberService
from .service_registry import ServiceRegistry
from .status_store import StatusStore

logger = logging.getLogger(__name__)


@dataclass
class CheckOutcome:
    """One service's result within a check cycle."""
    service_id: int
    name: str
    url: str
    status: str
    response_time_ms: int
    recorded: bool = True
    details: Optional[str] = None


@dataclass
class CycleReport:
    """All outcomes of a cycle, in service enumeration order."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[CheckOutcome] = field(default_factory=list)
    
    @property
    def persistence_failures(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.recorded)


class SchedulerService:
    """Check-cycle driver shared by the HTTP triggers and the interval timer."""
    
    def __init__(
        self,
        registry: ServiceRegistry,
        store: StatusStore,
        prober: ProberService,
        interval_seconds: int = 60,
        max_concurrent_checks: Optional[int] = None,
    ):
        self.registry = registry
        self.store = store
        self.prober = prober
        self.interval_seconds = interval_seconds
        self.max_concurrent_checks = max_concurrent_checks
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
    
    @property
    def running(self) -> bool:
        return self._running
    
    def start(self):
        """Start the periodic check cycle. Safe to call more than once."""
        if self._running:
            return
        
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._run_scheduled_cycle,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="run_check_cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.interval_seconds,
        )
        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (interval={self.interval_seconds}s, "
            f"max_concurrent={self.max_concurrent_checks or 'unbounded'})"
        )
    
    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")
    
    async def run_check_cycle(self, services: Optional[Sequence[Service]] = None) -> CycleReport:
        """Probe every service concurrently and persist each outcome.
        
        ``services`` defaults to every registered service. Failing to
        enumerate services raises ``PersistenceError``; nothing after that
        point aborts the cycle.
        """
        if services is None:
            services = await self.registry.list_services()
        
        report = CycleReport(started_at=utcnow())
        if not services:
            report.finished_at = utcnow()
            return report
        
        semaphore = asyncio.Semaphore(self.max_concurrent_checks) if self.max_concurrent_checks else None
        
        async def check_with_limit(service: Service) -> CheckOutcome:
            if semaphore is None:
                return await self._check_service(service)
            async with semaphore:
                return await self._check_service(service)
        
        report.outcomes = list(await asyncio.gather(*[check_with_limit(s) for s in services]))
        report.finished_at = utcnow()
        
        up = sum(1 for o in report.outcomes if o.status == STATUS_UP)
        logger.info(
            f"Check cycle finished: {len(report.outcomes)} services, {up} up, "
            f"{len(report.outcomes) - up} down, {report.persistence_failures} unrecorded"
        )
        return report
    
    async def _check_service(self, service: Service) -> CheckOutcome:
        """Probe one service and append its record. Never raises."""
        result = await self.prober.probe(service.url)
        outcome = CheckOutcome(
            service_id=service.id,
            name=service.name,
            url=service.url,
            status=result.status,
            response_time_ms=result.response_time_ms,
            details=result.details,
        )
        
        try:
            await self.store.insert(service.id, result.status, result.response_time_ms)
        except TrackerError as e:
            logger.error(f"Status for service {service.id} not recorded: {e.message}")
            outcome.recorded = False
        except Exception:
            logger.exception(f"Unexpected error recording status for service {service.id}")
            outcome.recorded = False
        
        logger.debug(f"Service {service.name}: {result.status} ({result.response_time_ms}ms)")
        return outcome
    
    async def _run_scheduled_cycle(self):
        """Timer entry point: same cycle, errors logged instead of returned."""
        try:
            await self.run_check_cycle()
        except Exception as e:
            logger.error(f"Error running scheduled check cycle: {e}")
