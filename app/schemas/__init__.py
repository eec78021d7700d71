"""Public schema exports shared across API route modules."""

from app.schemas.activity import ActivityLogRead
from app.schemas.agent import (
    AgentAutonomyUpdate,
    AgentStateRead,
    PickupResponse,
    TaskActionRequest,
    TaskActionResponse,
)
from app.schemas.calendar import (
    ReprioritisationRecommendationRead,
    ReprioritisationResultRead,
    ThresholdSummaryRead,
)
from app.schemas.errors import ApiErrorDetail, ApiErrorResponse
from app.schemas.health import HealthStatusResponse
from app.schemas.tasks import TaskRead

__all__ = [
    "ActivityLogRead",
    "AgentAutonomyUpdate",
    "AgentStateRead",
    "ApiErrorDetail",
    "ApiErrorResponse",
    "HealthStatusResponse",
    "PickupResponse",
    "ReprioritisationRecommendationRead",
    "ReprioritisationResultRead",
    "TaskActionRequest",
    "TaskActionResponse",
    "TaskRead",
    "ThresholdSummaryRead",
]
