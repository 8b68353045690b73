"""Audit trail helper for operator actions on cadences and instances."""

from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from opscadence.models.audit_log import AuditLog


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for and forwarded_for.split(",")[0].strip():
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def create_audit_log(
    db: Session,
    request: Request,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    workspace_id: Optional[str] = None,
    user: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Record an operator action with the caller's IP and user agent.

    Args:
        db: Database session
        request: Incoming request (for IP/user-agent)
        action: e.g. 'cadence_created', 'instance_completed', 'generation_triggered'
        entity_type: 'cadence' or 'instance'
        entity_id: ID of the affected row
        workspace_id: Owning workspace
        user: Username performing the action
        details: Additional JSON context
    """
    audit_log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        workspace_id=workspace_id,
        user=user,
        details=details,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)
    return audit_log
