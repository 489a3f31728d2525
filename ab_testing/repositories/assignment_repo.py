# repositories/assignment_repo.py
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError

from ab_testing.core.cookies import EPOCH, CookieStorage, NullCookieStorage
from ab_testing.core.settings import Settings
from ab_testing.models.schemas.assignment import AssignmentModel, AssignmentSet

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone, minus "(" and ")" which are not
# legal in an unquoted cookie value
_COOKIE_SAFE_CHARS = "-_.!~*'"

# Browsers do not keep cookies larger than this; anything longer was not written by us
MAX_COOKIE_BYTES = 4096


def encode_assignments(assignments: AssignmentSet) -> str:
    """Serializes an assignment set into the cookie value."""
    payload = {
        experiment_id: assignment.model_dump(by_alias=True)
        for experiment_id, assignment in assignments.items()
    }
    return quote(json.dumps(payload, separators=(",", ":")), safe=_COOKIE_SAFE_CHARS)


def decode_assignments(raw: Optional[str]) -> AssignmentSet:
    """
    Parses a cookie value into an assignment set.

    Accepts either the percent-encoded cookie value or the already-decoded
    JSON. Missing, empty, oversized or unparseable values give an empty set;
    entries that do not look like an assignment are dropped.
    """
    if not raw or len(raw) > MAX_COOKIE_BYTES:
        return {}

    text = raw if raw.lstrip().startswith("{") else unquote(raw)
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        logger.debug("Ignoring unparseable assignment cookie")
        return {}

    if not isinstance(data, dict):
        logger.debug("Ignoring assignment cookie that is not a JSON object")
        return {}

    assignments: AssignmentSet = {}
    for experiment_id, entry in data.items():
        try:
            assignments[experiment_id] = AssignmentModel.model_validate(entry)
        except ValidationError:
            logger.debug("Dropping malformed stored assignment for %r", experiment_id)
    return assignments


def get_variant_from_cookie(raw: Optional[str], experiment_id: str) -> Optional[str]:
    """
    Looks up the stored variant for an experiment in a raw cookie value.

    For contexts that hold the cookie value (e.g. a forwarded ``Cookie``
    header) but no live storage medium.
    """
    assignment = decode_assignments(raw).get(experiment_id)
    if assignment is None or not assignment.variant_id:
        return None
    return assignment.variant_id


class AssignmentRepository:
    """
    Persists a visitor's assignments as a single cookie.

    Every read goes to the storage medium; nothing is cached between calls.
    With no medium, loads return an empty set and writes do nothing.
    """

    def __init__(
        self,
        storage: Optional[CookieStorage] = None,
        cookie_name: str = "ab_assignments",
        expiry_days: int = 30,
        path: str = "/",
        samesite: str = "lax",
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage if storage is not None else NullCookieStorage()
        self.cookie_name = cookie_name
        self.expiry_days = expiry_days
        self.path = path
        self.samesite = samesite
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        storage: Optional[CookieStorage],
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> "AssignmentRepository":
        return cls(
            storage,
            cookie_name=settings.cookie_name,
            expiry_days=settings.cookie_expiry_days,
            path=settings.cookie_path,
            samesite=settings.cookie_samesite,
            clock=clock,
        )

    def load(self) -> AssignmentSet:
        return decode_assignments(self.storage.get(self.cookie_name))

    def save(self, assignments: AssignmentSet) -> None:
        """Writes the full set back with a fresh expiry."""
        expires = datetime.fromtimestamp(self._clock(), tz=timezone.utc) + timedelta(
            days=self.expiry_days
        )
        self.storage.set(
            self.cookie_name,
            encode_assignments(assignments),
            expires=expires,
            path=self.path,
            samesite=self.samesite,
        )

    def clear(self) -> None:
        """Expires the cookie so that the next load is empty."""
        self.storage.set(
            self.cookie_name,
            "",
            expires=EPOCH,
            path=self.path,
            samesite=self.samesite,
        )

    def get_assignment(self, experiment_id: str) -> Optional[AssignmentModel]:
        """Retrieves the stored assignment for one experiment."""
        return self.load().get(experiment_id)

    def store_assignment(self, experiment_id: str, variant_id: str) -> AssignmentModel:
        """
        Records an assignment, leaving every other experiment's assignment
        untouched.
        """
        assignments = self.load()
        assignment = AssignmentModel(
            experiment_id=experiment_id,
            variant_id=variant_id,
            assigned_at=int(self._clock() * 1000),
        )
        assignments[experiment_id] = assignment
        self.save(assignments)

        return assignment
