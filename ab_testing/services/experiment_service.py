# services/experiment_service.py
import logging
import math
from typing import Callable, List, Optional

from ab_testing.models.schemas.assignment import AssignmentModel, AssignmentSet
from ab_testing.models.schemas.experiment import (
    DebugOverridesModel,
    ExperimentConfig,
    VariantResponseModel,
)
from ab_testing.repositories.assignment_repo import (
    AssignmentRepository,
    get_variant_from_cookie,
)
from ab_testing.repositories.experiment_repo import ExperimentRepository
from ab_testing.services.debug_override import DebugOverrideResolver
from ab_testing.services.variant_selector import VariantSelector

logger = logging.getLogger(__name__)

FALLBACK_VARIANT = "A"

# trackExperiment(experiment_id, variant_id); the return value is ignored
TrackExperiment = Callable[[str, str], object]


class ExperimentService:
    """
    Resolves which variant of an experiment the current visitor sees.

    Assignment priority:
    1. Unknown experiment -> the fallback variant, nothing stored.
    2. Debug override from the query string, if it names a real variant.
    3. Stored assignment from the cookie, if its variant still exists.
    4. New weighted random assignment, stored and reported to analytics.
    """

    def __init__(
        self,
        experiment_repo: ExperimentRepository,
        assignment_repo: AssignmentRepository,
        override_resolver: Optional[DebugOverrideResolver] = None,
        selector: Optional[VariantSelector] = None,
        track_experiment: Optional[TrackExperiment] = None,
        fallback_variant: str = FALLBACK_VARIANT,
        verbose: bool = False,
    ):
        self.experiment_repo = experiment_repo
        self.assignment_repo = assignment_repo
        self.override_resolver = override_resolver or DebugOverrideResolver()
        self.selector = selector or VariantSelector()
        self.track_experiment = track_experiment
        self.fallback_variant = fallback_variant
        # Log assignments at INFO rather than DEBUG (development environments)
        self._assignment_log_level = logging.INFO if verbose else logging.DEBUG

    def get_variant(self, experiment_id: str, track_assignment: bool = True) -> str:
        """
        Gets the visitor's variant for an experiment, assigning one if needed.

        Only a new assignment is written to the cookie and reported through
        ``track_experiment``; overrides and stored assignments are returned
        as they are.
        """
        experiment = self.experiment_repo.get_experiment(experiment_id)
        if experiment is None:
            logger.warning('[A/B Test] Experiment "%s" not found', experiment_id)
            return self.fallback_variant

        # 1. Debug override; never persisted or tracked
        override = self.override_resolver.resolve(experiment_id)
        if override and experiment.has_variant(override):
            logger.log(
                self._assignment_log_level,
                "[A/B Test] Debug override: %s = %s",
                experiment_id,
                override,
            )
            return override

        # 2. Stored assignment, as long as the variant is still configured
        stored = self.assignment_repo.get_assignment(experiment_id)
        if stored is not None and experiment.has_variant(stored.variant_id):
            return stored.variant_id
        if stored is not None:
            logger.debug(
                "[A/B Test] Stored variant %r is no longer part of %s, reassigning",
                stored.variant_id,
                experiment_id,
            )

        # 3. New assignment
        new_variant = self.selector.select(experiment.variants)
        self.assignment_repo.store_assignment(experiment_id, new_variant)

        if track_assignment:
            self._track(experiment_id, new_variant)

        logger.log(
            self._assignment_log_level,
            "[A/B Test] New assignment: %s = %s",
            experiment_id,
            new_variant,
        )
        return new_variant

    def _track(self, experiment_id: str, variant_id: str) -> None:
        if self.track_experiment is None:
            return
        try:
            self.track_experiment(experiment_id, variant_id)
        except Exception:
            # Analytics is fire-and-forget; the assignment stands regardless
            logger.exception(
                "[A/B Test] Failed to track assignment %s = %s", experiment_id, variant_id
            )

    def get_variant_with_meta(
        self, experiment_id: str, track_assignment: bool = True
    ) -> VariantResponseModel:
        variant_id = self.get_variant(experiment_id, track_assignment=track_assignment)
        return VariantResponseModel(
            experiment_id=experiment_id,
            variant_id=variant_id,
            percentage=self.get_variant_percentage(experiment_id, variant_id),
        )

    def get_debug_overrides(self) -> DebugOverridesModel:
        """
        The debug directives of the current request, and the subset that
        actually takes effect because it names a configured variant.
        """
        requested = self.override_resolver.overrides()
        active = {}
        for experiment_id, variant_id in requested.items():
            experiment = self.experiment_repo.get_experiment(experiment_id)
            if experiment is not None and experiment.has_variant(variant_id):
                active[experiment_id] = variant_id

        return DebugOverridesModel(requested=requested, active=active)

    def get_default_variant(self, experiment_id: str) -> str:
        """
        The variant to show before an assignment is resolved: the configured
        default, else the first variant, else the fallback.
        """
        experiment = self.experiment_repo.get_experiment(experiment_id)
        if experiment is None:
            return self.fallback_variant
        if experiment.default_variant:
            return experiment.default_variant
        return experiment.variants[0].variant_id

    def force_variant(self, experiment_id: str, variant_id: str) -> AssignmentModel:
        """
        Stores a variant for an experiment without weighting or validation.
        The caller is responsible for passing a real variant.
        """
        return self.assignment_repo.store_assignment(experiment_id, variant_id)

    def get_all_assignments(self) -> AssignmentSet:
        return self.assignment_repo.load()

    def clear_assignments(self) -> None:
        """Forgets every assignment so the visitor is re-randomized."""
        self.assignment_repo.clear()

    @staticmethod
    def get_variant_from_cookie(cookie_value: Optional[str], experiment_id: str) -> Optional[str]:
        return get_variant_from_cookie(cookie_value, experiment_id)

    def get_assignments_cookie_name(self) -> str:
        return self.assignment_repo.cookie_name

    def get_experiment(self, experiment_id: str) -> Optional[ExperimentConfig]:
        return self.experiment_repo.get_experiment(experiment_id)

    def get_active_experiments(self) -> List[ExperimentConfig]:
        return self.experiment_repo.list_experiments()

    def get_variant_percentage(self, experiment_id: str, variant_id: str) -> int:
        """
        Share of traffic for a variant as a whole percentage, rounded half up.
        Unknown experiments and variants give 0.
        """
        experiment = self.experiment_repo.get_experiment(experiment_id)
        if experiment is None:
            return 0

        variant = experiment.get_variant(variant_id)
        if variant is None:
            return 0

        return int(math.floor(variant.weight / experiment.total_weight() * 100 + 0.5))
