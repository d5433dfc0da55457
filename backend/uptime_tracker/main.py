"""Main FastAPI application: probing engine, status history and triggers."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import async_sessionmaker

from .config import Settings, settings as default_settings
from .database import async_session, init_db, close_db
from .errors import TrackerError, tracker_error_handler
from .routers import services_router, checks_router, status_router
from .services import ProberService, SchedulerService, ServiceRegistry, StatusStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting Uptime Tracker")
    
    # Manage whichever engine the injected session factory is bound to
    db_engine = app.state.session_factory.kw["bind"]
    await init_db(db_engine)
    logger.info("Database initialized")
    
    scheduler: SchedulerService = app.state.scheduler
    if app.state.settings.scheduler_enabled:
        scheduler.start()
    
    yield
    
    scheduler.stop()
    await close_db(db_engine)
    logger.info("Shutdown complete")


def create_app(
    app_settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker] = None,
    prober: Optional[ProberService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.
    
    ``session_factory`` and ``prober`` default to the configured database and
    a network-backed prober; tests pass in-memory and mocked ones.
    """
    app_settings = app_settings or default_settings
    session_factory = session_factory or async_session
    
    app = FastAPI(
        title="Uptime Tracker",
        description="HTTP(S) endpoint probing, status history and uptime bars",
        version="1.0.0",
        lifespan=lifespan,
    )
    
    store = StatusStore(session_factory)
    registry = ServiceRegistry(session_factory, store)
    app.state.settings = app_settings
    app.state.session_factory = session_factory
    app.state.store = store
    app.state.registry = registry
    app.state.scheduler = SchedulerService(
        registry,
        store,
        prober or ProberService(timeout_ms=app_settings.probe_timeout_ms),
        interval_seconds=app_settings.check_interval_seconds,
        max_concurrent_checks=app_settings.max_concurrent_checks,
    )
    
    app.add_exception_handler(TrackerError, tracker_error_handler)
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.include_router(services_router)
    app.include_router(checks_router)
    app.include_router(status_router)
    
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "scheduler_running": app.state.scheduler.running,
        }
    
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(app, host="0.0.0.0", port=default_settings.web_port)
