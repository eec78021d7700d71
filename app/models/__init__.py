"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from app.models.activity_log import ActivityLog
from app.models.agent_state import AgentState
from app.models.tasks import Task

__all__ = [
    "ActivityLog",
    "AgentState",
    "Task",
]
