"""FastAPI dependencies resolving the components wired in ``create_app``."""
from fastapi import Request

from .config import Settings
from .services import SchedulerService, ServiceRegistry, StatusStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


def get_store(request: Request) -> StatusStore:
    return request.app.state.store


def get_scheduler(request: Request) -> SchedulerService:
    return request.app.state.scheduler
