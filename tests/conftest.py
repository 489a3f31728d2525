import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import pytest

from ab_testing.repositories.assignment_repo import AssignmentRepository
from ab_testing.repositories.experiment_repo import DEFAULT_EXPERIMENTS, ExperimentRepository
from ab_testing.services.debug_override import DebugOverrideResolver
from ab_testing.services.experiment_service import ExperimentService
from ab_testing.services.variant_selector import VariantSelector

COOKIE_NAME = "ab_assignments"


class FakeClock:
    """Seconds since the epoch, advanced by hand."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass(frozen=True)
class CookieRecord:
    value: str
    expires: datetime
    path: str
    samesite: str


class MemoryCookieStorage:
    """A dict-backed cookie jar driven by a clock returning seconds since the epoch."""

    def __init__(self, clock):
        self._clock = clock
        self.records: Dict[str, CookieRecord] = {}
        self.write_count = 0

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def get(self, name: str) -> Optional[str]:
        record = self.records.get(name)
        if record is None:
            return None
        if record.expires <= self._now():
            del self.records[name]
            return None
        return record.value

    def set(
        self,
        name: str,
        value: str,
        *,
        expires: datetime,
        path: str = "/",
        samesite: str = "lax",
    ) -> None:
        self.write_count += 1
        if expires <= self._now():
            self.records.pop(name, None)
            return
        self.records[name] = CookieRecord(value=value, expires=expires, path=path, samesite=samesite)

    def put_raw(self, name: str, value: str, days: int = 30) -> None:
        """Seeds a cookie without counting it as a write."""
        expires = datetime.fromtimestamp(self._clock() + days * 86400, tz=timezone.utc)
        self.records[name] = CookieRecord(value=value, expires=expires, path="/", samesite="lax")


class RecordingTracker:
    def __init__(self):
        self.calls = []

    def __call__(self, experiment_id, variant_id):
        self.calls.append((experiment_id, variant_id))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(clock):
    return MemoryCookieStorage(clock=clock)


@pytest.fixture
def experiment_repo():
    return ExperimentRepository(DEFAULT_EXPERIMENTS)


@pytest.fixture
def assignment_repo(storage, clock):
    return AssignmentRepository(storage, cookie_name=COOKIE_NAME, clock=clock)


@pytest.fixture
def tracker():
    return RecordingTracker()


@pytest.fixture
def make_service(experiment_repo, assignment_repo, tracker):
    def _make(query_params=None, seed=1234, repo=None):
        return ExperimentService(
            experiment_repo=repo or experiment_repo,
            assignment_repo=assignment_repo,
            override_resolver=DebugOverrideResolver(query_params),
            selector=VariantSelector(random.Random(seed)),
            track_experiment=tracker,
        )

    return _make


@pytest.fixture
def service(make_service):
    return make_service()
