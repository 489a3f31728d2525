"""Tests for analytics event tracking."""

from ab_testing.repositories.event_repo import EventRepository
from ab_testing.services.event_service import EventService


class TestEventService:
    def test_track_experiment(self):
        repo = EventRepository()
        event = EventService(repo).track_experiment("cta-color", "green")

        assert event.category == "ab_test"
        assert event.type == "experiment_viewed"
        assert event.experiment_id == "cta-color"
        assert event.properties == {"experimentId": "cta-color", "variantId": "green"}
        assert repo.get_events_for_experiment() == [event]

    def test_extra_properties(self):
        service = EventService(EventRepository())
        event = service.track_experiment("cta-color", "green", {"ctaLocation": "hero"})
        assert event.properties["ctaLocation"] == "hero"

    def test_filters(self):
        repo = EventRepository()
        service = EventService(repo)
        service.track_experiment("cta-color", "green")
        service.track_experiment("price-display", "annual")
        service.track_event("engagement", "click_cta", {"buttonText": "Book Now"})

        assert len(repo.get_events_for_experiment("cta-color")) == 1
        assert len(repo.get_events_for_experiment(event_type="experiment_viewed")) == 2
        assert len(repo.get_events_for_experiment(event_type="click_cta")) == 1
        assert repo.get_events_for_experiment("missing") == []

    def test_log_is_bounded(self):
        repo = EventRepository(max_events=3)
        service = EventService(repo)
        for i in range(5):
            service.track_experiment(f"exp-{i}", "A")

        assert len(repo) == 3
        assert [e.experiment_id for e in repo.get_events_for_experiment()] == ["exp-2", "exp-3", "exp-4"]
