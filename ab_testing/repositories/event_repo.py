from collections import deque
from typing import Deque, List, Optional

from ab_testing.models.schemas.event import EventModel


class EventRepository:
    """Bounded in-process log of the analytics events emitted by this process."""

    def __init__(self, max_events: int = 1000):
        self._events: Deque[EventModel] = deque(maxlen=max_events)

    def create_event(self, event: EventModel) -> EventModel:
        """Appends an event, evicting the oldest once the log is full."""
        self._events.append(event)
        return event

    def get_events_for_experiment(
        self, experiment_id: Optional[str] = None, **kwargs
    ) -> List[EventModel]:
        """
        Retrieves recorded events, optionally restricted to one experiment
        and filtered by event type.
        """
        events = list(self._events)

        if experiment_id is not None:
            events = [event for event in events if event.experiment_id == experiment_id]

        if event_type := kwargs.get("event_type"):
            events = [event for event in events if event.type == event_type]

        return events

    def __len__(self) -> int:
        return len(self._events)
