"""Engine run model for tracking generation and status sweep executions."""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.sql import func
from opscadence.database import Base, JSONType, UTCDateTime


class EngineRun(Base):
    """Batch execution history and status tracking."""

    __tablename__ = "engine_runs"

    id = Column(Integer, primary_key=True, index=True)

    # Execution details
    kind = Column(String(30), nullable=False, index=True)  # 'generation', 'status_sweep'
    trigger_type = Column(String(30), nullable=False, default='scheduled')  # 'scheduled', 'cron', 'manual'
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=True)
    status = Column(String(20), nullable=False)  # 'running', 'completed', 'partial', 'failed'

    # Statistics
    items_processed = Column(Integer, default=0, nullable=False)
    items_changed = Column(Integer, default=0, nullable=False)
    items_failed = Column(Integer, default=0, nullable=False)

    # Error information
    error_message = Column(Text, nullable=True)
    details = Column(JSONType, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<EngineRun(id={self.id}, kind='{self.kind}', status='{self.status}', changed={self.items_changed})>"
