"""Service schemas for API."""
from datetime import datetime
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

ALLOWED_SCHEMES = ("http", "https")


def validate_service_url(value: str) -> str:
    """Require an absolute http(s) URL with a host."""
    value = value.strip()
    try:
        parsed = urlparse(value)
        # Accessing .port raises for out-of-range or non-numeric ports
        parsed.port
    except ValueError as e:
        raise ValueError(f"Invalid URL format: {e}") from e
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValueError("Invalid URL format: scheme must be http or https")
    if not parsed.hostname:
        raise ValueError("Invalid URL format: host is required")
    return value


class ServiceCreate(BaseModel):
    """Schema for registering a service."""
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)
    
    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value
    
    @field_validator("url")
    @classmethod
    def url_is_valid(cls, value: str) -> str:
        return validate_service_url(value)


class ServiceUpdate(ServiceCreate):
    """Schema for editing a service (name and url are both required)."""


class ServiceRef(BaseModel):
    """Minimal service identity embedded in status responses."""
    id: int
    name: str
    url: str
    
    class Config:
        from_attributes = True


class ServiceResponse(ServiceRef):
    """Schema for service in API responses."""
    created_at: datetime
    updated_at: datetime


class StatusRecordResponse(BaseModel):
    """One stored probe outcome."""
    id: int
    service_id: int
    status: str
    response_time_ms: int
    timestamp: datetime
    
    class Config:
        from_attributes = True
