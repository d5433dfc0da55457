"""StatusRecord model - append-only probe history."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base, utcnow

STATUS_UP = "up"
STATUS_DOWN = "down"
# Display-only: never persisted
STATUS_UNKNOWN = "unknown"


class StatusRecord(Base):
    """Outcome of one probe. Immutable once written."""
    
    __tablename__ = "status_records"
    __table_args__ = (
        Index("ix_status_records_service_timestamp", "service_id", "timestamp"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    service_id = Column(
        Integer,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String, nullable=False)  # up, down
    response_time_ms = Column(Integer, nullable=False)  # recorded on failure too
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    
    service = relationship("Service", back_populates="statuses")
