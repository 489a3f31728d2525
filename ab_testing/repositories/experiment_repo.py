import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from ab_testing.models.schemas.experiment import ExperimentConfig

logger = logging.getLogger(__name__)


# Built-in registry. Weights are relative:
#   50/50    -> [{"id": "A", "weight": 1}, {"id": "B", "weight": 1}]
#   80/20    -> [{"id": "A", "weight": 4}, {"id": "B", "weight": 1}]
#   33/33/33 -> three variants of weight 1
DEFAULT_EXPERIMENTS: Dict[str, Dict[str, Any]] = {
    # CTA button text: "Book Now" vs "Get Started"
    "cta-button-text": {
        "variants": [{"id": "A", "weight": 1}, {"id": "B", "weight": 1}],
        "defaultVariant": "A",
    },
    "marketplace-layout": {
        "variants": [{"id": "grid", "weight": 1}, {"id": "list", "weight": 1}],
        "defaultVariant": "grid",
    },
    # 90/10 split for careful testing of annual pricing
    "price-display": {
        "variants": [{"id": "standard", "weight": 9}, {"id": "annual", "weight": 1}],
        "defaultVariant": "standard",
    },
    "cta-color": {
        "variants": [
            {"id": "primary", "weight": 1},
            {"id": "green", "weight": 1},
            {"id": "orange", "weight": 1},
        ],
        "defaultVariant": "primary",
    },
}


class ExperimentRepository:
    """
    Read-only registry of the active experiments.

    Built once from a static mapping of experiment id to
    ``{"variants": [{"id", "weight"}, ...], "defaultVariant": ...}``.
    There is no mutation API; the table is exposed through a
    ``MappingProxyType``.
    """

    def __init__(self, experiments: Mapping[str, Union[Mapping[str, Any], ExperimentConfig]]):
        table: Dict[str, ExperimentConfig] = {}

        for experiment_id, experiment_data in experiments.items():
            experiment = self._build_experiment(experiment_id, experiment_data)
            table[experiment_id] = experiment

        self._experiments = MappingProxyType(table)
        logger.debug("Loaded %d experiments: %s", len(table), ", ".join(table))

    @staticmethod
    def _build_experiment(
        experiment_id: str, experiment_data: Union[Mapping[str, Any], ExperimentConfig]
    ) -> ExperimentConfig:
        if isinstance(experiment_data, ExperimentConfig):
            experiment = experiment_data
        else:
            experiment_dict = dict(experiment_data)
            # The mapping key doubles as the id when the entry omits it
            experiment_dict.setdefault("id", experiment_id)
            experiment = ExperimentConfig.model_validate(experiment_dict)

        if experiment.experiment_id != experiment_id:
            raise ValueError(
                f"Experiment registered as {experiment_id!r} declares id {experiment.experiment_id!r}"
            )
        return experiment

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ExperimentRepository":
        """Loads the registry from a JSON file holding the same mapping."""
        with open(path, encoding="utf-8") as f:
            experiments = json.load(f)

        if not isinstance(experiments, dict):
            raise ValueError(f"Experiment file {path} must contain a JSON object")

        return cls(experiments)

    def get_experiment(self, experiment_id: str) -> Optional[ExperimentConfig]:
        """Returns the experiment, or None when it is not registered."""
        return self._experiments.get(experiment_id)

    def list_experiments(self) -> List[ExperimentConfig]:
        return list(self._experiments.values())

    @property
    def experiments(self) -> Mapping[str, ExperimentConfig]:
        return self._experiments

    def __contains__(self, experiment_id: object) -> bool:
        return experiment_id in self._experiments

    def __len__(self) -> int:
        return len(self._experiments)
