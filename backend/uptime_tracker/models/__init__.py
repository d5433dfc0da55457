"""Database models."""
from .service import Service
from .status_record import StatusRecord

__all__ = ["Service", "StatusRecord"]
