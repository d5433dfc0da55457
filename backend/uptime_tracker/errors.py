"""Error taxonomy surfaced at the API boundary.

Probe failures are not errors: they become ``down`` records.
"""
from fastapi import Request
from fastapi.responses import JSONResponse


class TrackerError(Exception):
    """Base exception for errors reported to API callers."""

    def __init__(self, code: str, message: str, status: int = 500):
        self.code = code
        self.message = message
        self.status = status
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status,
            }
        }


class NotFoundError(TrackerError):
    def __init__(self, message: str = "Service not found"):
        super().__init__("not_found", message, status=404)


class PersistenceError(TrackerError):
    def __init__(self, message: str = "Status store unavailable"):
        super().__init__("persistence_error", message, status=503)


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status, content=exc.to_dict())
