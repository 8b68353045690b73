"""Instance model: one concrete, time-bound materialization of a cadence occurrence."""

from sqlalchemy import Column, Integer, String, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from opscadence.database import Base, JSONType, UTCDateTime


class Instance(Base):
    """Task instance generated from a cadence or created ad hoc."""

    __tablename__ = "cadence_instances"

    id = Column(Integer, primary_key=True, index=True)

    workspace_id = Column(String(64), nullable=False, index=True)
    cadence_id = Column(Integer, ForeignKey("cadences.id", ondelete="SET NULL"), nullable=True)
    form_id = Column(String(64), nullable=False, index=True)
    instance_name = Column(String(255), nullable=False)

    # Timing
    scheduled_for = Column(UTCDateTime, nullable=False)
    due_at = Column(UTCDateTime, nullable=False)

    # Lifecycle
    status = Column(String(20), nullable=False, default='pending')  # see constants.statuses.InstanceStatus
    submission_id = Column(String(64), nullable=True)
    started_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    completed_by = Column(String(100), nullable=True)

    assigned_to = Column(JSONType, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSONType, nullable=False, default=dict)

    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    cadence = relationship("Cadence", back_populates="instances")

    __table_args__ = (
        UniqueConstraint('cadence_id', 'scheduled_for', name='uq_instances_cadence_scheduled_for'),
        Index('idx_instances_status_scheduled_for', 'status', 'scheduled_for'),
        Index('idx_instances_status_due_at', 'status', 'due_at'),
    )

    def __repr__(self):
        return f"<Instance(id={self.id}, cadence={self.cadence_id}, scheduled_for={self.scheduled_for}, status='{self.status}')>"
