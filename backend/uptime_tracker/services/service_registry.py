"""Service registry - CRUD for monitored services with cascading history delete."""
import logging
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database import utcnow
from ..errors import NotFoundError, PersistenceError
from ..models import Service
from ..utils.db_utils import retry_on_lock
from .status_store import StatusStore

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Registered services. Callers validate name/url before reaching here."""
    
    def __init__(self, session_factory: async_sessionmaker, store: StatusStore):
        self._session_factory = session_factory
        self._store = store
    
    async def list_services(self) -> List[Service]:
        """All services, newest first (id breaks ties for a stable order)."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Service).order_by(Service.created_at.desc(), Service.id.desc())
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list services: {e}")
            raise PersistenceError(f"Failed to list services: {e}") from e
    
    async def get_service(self, service_id: int) -> Service:
        try:
            async with self._session_factory() as session:
                service = await session.get(Service, service_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load service {service_id}: {e}") from e
        if service is None:
            raise NotFoundError()
        return service
    
    async def create_service(self, name: str, url: str) -> Service:
        async def do_create() -> Service:
            async with self._session_factory() as session:
                service = Service(name=name.strip(), url=url.strip())
                session.add(service)
                await session.commit()
                await session.refresh(service)
                return service
        
        try:
            service = await retry_on_lock(do_create)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create service: {e}") from e
        logger.info(f"Registered service {service.id} ({service.name}) -> {service.url}")
        return service
    
    async def update_service(self, service_id: int, name: str, url: str) -> Service:
        async def do_update() -> Service:
            async with self._session_factory() as session:
                service = await session.get(Service, service_id)
                if service is None:
                    raise NotFoundError()
                service.name = name.strip()
                service.url = url.strip()
                service.updated_at = utcnow()
                await session.commit()
                await session.refresh(service)
                return service
        
        try:
            return await retry_on_lock(do_update)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update service {service_id}: {e}") from e
    
    async def delete_service(self, service_id: int) -> None:
        """Delete a service and all of its status records in one transaction."""
        async def do_delete() -> int:
            async with self._session_factory() as session:
                service = await session.get(Service, service_id)
                if service is None:
                    raise NotFoundError()
                removed = await self._store.delete_all_for_service(service_id, session=session)
                await session.execute(delete(Service).where(Service.id == service_id))
                await session.commit()
                return removed
        
        try:
            removed = await retry_on_lock(do_delete)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete service {service_id}: {e}") from e
        logger.info(f"Deleted service {service_id} and {removed} status records")
