"""Service model - HTTP(S) endpoints being monitored."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class Service(Base):
    """A monitored endpoint, probed with a single GET per check cycle."""
    
    __tablename__ = "services"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    
    # History is removed by the store (and ON DELETE CASCADE)
    statuses = relationship(
        "StatusRecord",
        back_populates="service",
        passive_deletes=True,
    )
