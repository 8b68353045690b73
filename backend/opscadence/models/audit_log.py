"""Audit log model for user-driven cadence and instance changes."""

from sqlalchemy import Column, Integer, String, Index
from sqlalchemy.sql import func
from opscadence.database import Base, JSONType, UTCDateTime


class AuditLog(Base):
    """Audit trail for operator actions."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    action = Column(String(100), nullable=False)  # 'cadence_created', 'instance_completed', 'generation_triggered'
    entity_type = Column(String(50), nullable=True)  # 'cadence', 'instance'
    entity_id = Column(Integer, nullable=True)
    workspace_id = Column(String(64), nullable=True)

    user = Column(String(100), nullable=True)
    details = Column(JSONType, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_logs_action', 'action'),
        Index('idx_audit_logs_workspace_created', 'workspace_id', 'created_at'),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity='{self.entity_type}')>"
