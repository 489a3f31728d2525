# services/event_service.py
import logging
import uuid
from typing import Any, Dict, Optional

from ab_testing.models.schemas.event import EventModel
from ab_testing.repositories.event_repo import EventRepository

logger = logging.getLogger(__name__)

AB_TEST_CATEGORY = "ab_test"
EXPERIMENT_VIEWED = "experiment_viewed"


class EventService:
    def __init__(self, event_repo: EventRepository):
        self.event_repo = event_repo

    def track_event(
        self,
        category: str,
        event_type: str,
        properties: Optional[Dict[str, Any]] = None,
        experiment_id: Optional[str] = None,
    ) -> EventModel:
        event = EventModel(
            event_id=str(uuid.uuid4()),
            category=category,
            type=event_type,
            experiment_id=experiment_id,
            properties=dict(properties or {}),
        )
        logger.info("Tracked %s/%s %s", category, event_type, event.properties)

        return self.event_repo.create_event(event)

    def track_experiment(
        self,
        experiment_id: str,
        variant_id: str,
        properties: Optional[Dict[str, Any]] = None,
    ) -> EventModel:
        """Records that a visitor was assigned a variant of an experiment."""
        return self.track_event(
            AB_TEST_CATEGORY,
            EXPERIMENT_VIEWED,
            {"experimentId": experiment_id, "variantId": variant_id, **(properties or {})},
            experiment_id=experiment_id,
        )
