"""Shared task column, task priority, and agent status enum values."""

from __future__ import annotations

from enum import Enum


class TaskColumn(str, Enum):
    """Kanban columns a task can sit in."""

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(str, Enum):
    """Task priorities, declared from most to least urgent."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank where 0 is the most urgent."""
        return _PRIORITY_RANKS[self]

    @classmethod
    def coerce(cls, value: str | TaskPriority | None) -> TaskPriority:
        """Resolve a stored priority; unset or unknown values count as LOW."""
        if isinstance(value, TaskPriority):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.LOW


_PRIORITY_RANKS = {priority: index for index, priority in enumerate(TaskPriority)}


def priority_rank(value: str | TaskPriority | None) -> int:
    """Total-order rank for a stored priority (urgent=0 ... low=3)."""
    return TaskPriority.coerce(value).rank


class AgentStatus(str, Enum):
    """Agent-wide status values; THINKING/RESTING are set by the UI only."""

    IDLE = "idle"
    ACTIVE = "active"
    THINKING = "thinking"
    RESTING = "resting"
