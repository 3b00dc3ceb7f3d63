"""
Task status state machine.

    todo <-> in-progress <-> done

The machine has no memory beyond the current status, so every answer here is a
pure function of (current, requested).
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List

from .errors import InvalidTransitionError
from .models import TaskStatus

_EDGES: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.TODO, TaskStatus.DONE}),
    TaskStatus.DONE: frozenset({TaskStatus.IN_PROGRESS}),
}


# PUBLIC_INTERFACE
def allowed_transitions(current: TaskStatus) -> List[TaskStatus]:
    """Return the statuses reachable from `current`, in declaration order of TaskStatus."""
    edges = _EDGES[current]
    return [s for s in TaskStatus if s in edges]


# PUBLIC_INTERFACE
def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    """True when `requested` is an edge out of `current`. Self-transitions are not edges."""
    return requested in _EDGES[current]


# PUBLIC_INTERFACE
def validate_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    """
    Check a status change against the state machine.

    Returns:
        False when the request is a no-op (requested == current), True when it is a
        legal edge.

    Raises:
        InvalidTransitionError carrying the current status and its legal next statuses.
    """
    if requested == current:
        return False
    if not can_transition(current, requested):
        raise InvalidTransitionError(current, requested, allowed_transitions(current))
    return True
