from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventModel(BaseModel):
    """An analytics event recorded by the event service."""

    event_id: str
    category: str = Field(..., description="e.g., 'ab_test', 'engagement', 'conversion'")
    type: str = Field(..., description="e.g., 'experiment_viewed'")
    experiment_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    properties: Dict[str, Any] = Field(default_factory=dict, description="Flexible JSON object.")
