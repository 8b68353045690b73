from enum import Enum
from typing import Dict, FrozenSet, Tuple


class ScheduleType(str, Enum):
    RECURRING = "recurring"
    ONE_TIME = "one_time"
    EVENT_BASED = "event_based"


class SchedulePattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    CUSTOM = "custom"


class InstanceStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"
    SKIPPED = "skipped"


# Transitions the status sweeper is allowed to write: target -> eligible sources
SWEEP_TRANSITIONS: Dict[InstanceStatus, FrozenSet[InstanceStatus]] = {
    InstanceStatus.READY: frozenset({InstanceStatus.PENDING}),
    InstanceStatus.MISSED: frozenset({InstanceStatus.READY, InstanceStatus.IN_PROGRESS}),
}


class InstanceAction(str, Enum):
    START = "start"
    COMPLETE = "complete"
    SKIP = "skip"
    RESET = "reset"


# User-driven transitions: action -> (eligible sources, target)
USER_TRANSITIONS: Dict[InstanceAction, Tuple[FrozenSet[InstanceStatus], InstanceStatus]] = {
    InstanceAction.START: (
        frozenset({InstanceStatus.READY}),
        InstanceStatus.IN_PROGRESS,
    ),
    InstanceAction.COMPLETE: (
        frozenset({InstanceStatus.READY, InstanceStatus.IN_PROGRESS}),
        InstanceStatus.COMPLETED,
    ),
    InstanceAction.SKIP: (
        frozenset({InstanceStatus.PENDING, InstanceStatus.READY}),
        InstanceStatus.SKIPPED,
    ),
    InstanceAction.RESET: (
        frozenset({
            InstanceStatus.IN_PROGRESS,
            InstanceStatus.COMPLETED,
            InstanceStatus.SKIPPED,
            InstanceStatus.MISSED,
        }),
        InstanceStatus.READY,
    ),
}


class TriggerType(str, Enum):
    SCHEDULED = "scheduled"
    CRON = "cron"
    MANUAL = "manual"


class RunKind(str, Enum):
    GENERATION = "generation"
    STATUS_SWEEP = "status_sweep"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


def explain_transition(action: InstanceAction, current: InstanceStatus) -> str:
    """Human-readable reason a user action is refused from the current status."""
    sources, target = USER_TRANSITIONS[action]
    allowed = ", ".join(sorted(s.value for s in sources))
    return (
        f"Cannot {action.value} an instance that is '{current.value}'; "
        f"'{target.value}' is only reachable from: {allowed}."
    )
