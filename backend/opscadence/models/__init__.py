"""Database models."""

from opscadence.models.cadence import Cadence
from opscadence.models.instance import Instance
from opscadence.models.engine_run import EngineRun
from opscadence.models.audit_log import AuditLog

__all__ = [
    "Cadence",
    "Instance",
    "EngineRun",
    "AuditLog",
]
