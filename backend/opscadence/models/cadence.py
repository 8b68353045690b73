"""Cadence model: a recurring task definition bound to a form."""

from sqlalchemy import Column, Integer, String, Boolean, Text, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from opscadence.database import Base, JSONType, UTCDateTime


class Cadence(Base):
    """Recurring schedule that materializes form instances."""

    __tablename__ = "cadences"

    id = Column(Integer, primary_key=True, index=True)

    # Ownership
    workspace_id = Column(String(64), nullable=False, index=True)
    form_id = Column(String(64), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Recurrence definition (validated by schemas.schedule.ScheduleConfig)
    schedule_config = Column(JSONType, nullable=False)
    # Opaque to the engine; consumed by the notification collaborator
    notification_config = Column(JSONType, nullable=True)
    assigned_to = Column(JSONType, nullable=False, default=list)

    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(100), nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    instances = relationship("Instance", back_populates="cadence", passive_deletes=True)

    __table_args__ = (
        Index('idx_cadences_workspace_active', 'workspace_id', 'is_active'),
    )

    def __repr__(self):
        return f"<Cadence(id={self.id}, name='{self.name}', active={self.is_active})>"
