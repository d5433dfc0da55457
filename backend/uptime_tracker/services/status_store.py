"""Status store - append-only probe history backed by SQLAlchemy.

Records are never updated or deleted individually; the only removal path is
``delete_all_for_service`` when a service is unregistered. Every write opens
its own session, so concurrent probe tasks can append without a shared lock.
"""
import logging
from datetime import datetime, timedelta
from typing import AsyncIterator, Dict, Iterable, List, Optional

from sqlalchemy import Row, select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import utcnow
from ..errors import PersistenceError
from ..models import StatusRecord
from ..models.status_record import STATUS_UP, STATUS_DOWN
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 500
DEFAULT_DAYS = 30
STREAM_BATCH_SIZE = 1000


class StatusStore:
    """Queries and appends over the ``status_records`` table."""
    
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
    
    async def insert(
        self,
        service_id: int,
        status: str,
        response_time_ms: int,
        timestamp: Optional[datetime] = None,
    ) -> StatusRecord:
        """Append one record. The timestamp defaults to the time of write."""
        if status not in (STATUS_UP, STATUS_DOWN):
            raise ValueError(f"Invalid status {status!r}: expected 'up' or 'down'")
        if response_time_ms < 0:
            raise ValueError("response_time_ms must be non-negative")
        
        async def do_insert() -> StatusRecord:
            async with self._session_factory() as session:
                record = StatusRecord(
                    service_id=service_id,
                    status=status,
                    response_time_ms=int(response_time_ms),
                    timestamp=timestamp or utcnow(),
                )
                session.add(record)
                await session.commit()
                return record
        
        try:
            return await retry_on_lock(do_insert)
        except SQLAlchemyError as e:
            logger.error(f"Failed to write status record for service {service_id}: {e}")
            raise PersistenceError(f"Failed to write status record: {e}") from e
    
    async def find_by_service_in_range(
        self,
        service_id: int,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[StatusRecord]:
        """Records with ``start_time <= timestamp < end_time``, newest first.
        
        ``start_time`` defaults to 30 days ago; ``end_time`` is open when
        omitted. Ties on timestamp are broken by id so repeated calls return
        identical sequences.
        """
        if start_time is None:
            start_time = utcnow() - timedelta(days=DEFAULT_DAYS)
        
        query = (
            select(StatusRecord)
            .where(
                StatusRecord.service_id == service_id,
                StatusRecord.timestamp >= start_time,
            )
            .order_by(StatusRecord.timestamp.desc(), StatusRecord.id.desc())
            .limit(limit)
        )
        if end_time is not None:
            query = query.where(StatusRecord.timestamp < end_time)
        
        async with self._session_factory() as session:
            result = await self._execute(session, query)
            return list(result.scalars().all())
    
    async def iter_window(
        self,
        service_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> AsyncIterator[Row]:
        """Every record with ``start_time <= timestamp < end_time``, oldest first.
        
        Streams (timestamp, status, response_time_ms) rows instead of loading
        the window at once, so long windows are aggregated without a cap.
        """
        query = (
            select(StatusRecord.timestamp, StatusRecord.status, StatusRecord.response_time_ms)
            .where(
                StatusRecord.service_id == service_id,
                StatusRecord.timestamp >= start_time,
                StatusRecord.timestamp < end_time,
            )
            .order_by(StatusRecord.timestamp, StatusRecord.id)
            .execution_options(yield_per=STREAM_BATCH_SIZE)
        )
        async with self._session_factory() as session:
            try:
                result = await session.stream(query)
                async for row in result:
                    yield row
            except SQLAlchemyError as e:
                logger.error(f"Status store stream failed: {e}")
                raise PersistenceError(f"Status store query failed: {e}") from e
    
    async def find_latest(self, service_id: int) -> Optional[StatusRecord]:
        """The record with the greatest timestamp for a service, if any."""
        query = (
            select(StatusRecord)
            .where(StatusRecord.service_id == service_id)
            .order_by(StatusRecord.timestamp.desc(), StatusRecord.id.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await self._execute(session, query)
            return result.scalar_one_or_none()
    
    async def find_latest_for_services(self, service_ids: Iterable[int]) -> Dict[int, StatusRecord]:
        """Latest record per service in a single round trip."""
        service_ids = list(service_ids)
        if not service_ids:
            return {}
        
        latest = (
            select(
                StatusRecord.service_id,
                func.max(StatusRecord.timestamp).label("latest_ts"),
            )
            .where(StatusRecord.service_id.in_(service_ids))
            .group_by(StatusRecord.service_id)
            .subquery()
        )
        query = (
            select(StatusRecord)
            .join(
                latest,
                (StatusRecord.service_id == latest.c.service_id)
                & (StatusRecord.timestamp == latest.c.latest_ts),
            )
            .order_by(StatusRecord.id)
        )
        async with self._session_factory() as session:
            result = await self._execute(session, query)
            # Same-timestamp duplicates: the highest id wins
            return {record.service_id: record for record in result.scalars().all()}
    
    async def delete_all_for_service(self, service_id: int, session: Optional[AsyncSession] = None) -> int:
        """Remove a service's whole history. Returns the number of rows deleted.
        
        When ``session`` is given the delete joins the caller's transaction; the
        caller commits and handles (and retries) database errors.
        """
        statement = delete(StatusRecord).where(StatusRecord.service_id == service_id)
        if session is not None:
            result = await session.execute(statement)
            return result.rowcount or 0
        
        async def do_delete() -> int:
            async with self._session_factory() as own_session:
                result = await own_session.execute(statement)
                await own_session.commit()
                return result.rowcount or 0
        
        try:
            return await retry_on_lock(do_delete)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete history for service {service_id}: {e}") from e
    
    @staticmethod
    async def _execute(session: AsyncSession, statement):
        try:
            return await session.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"Status store query failed: {e}")
            raise PersistenceError(f"Status store query failed: {e}") from e
