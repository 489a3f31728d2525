"""Tests for the experiment registry and experiment configuration."""

import json

import pytest
from pydantic import ValidationError

from ab_testing.models.schemas.experiment import ExperimentConfig, VariantConfig
from ab_testing.repositories.experiment_repo import DEFAULT_EXPERIMENTS, ExperimentRepository


class TestExperimentConfig:
    def test_valid_experiment(self):
        exp = ExperimentConfig.model_validate(
            {
                "id": "test",
                "variants": [{"id": "A", "weight": 1}, {"id": "B", "weight": 3}],
                "defaultVariant": "A",
            }
        )
        assert exp.experiment_id == "test"
        assert exp.variant_ids() == ["A", "B"]
        assert exp.default_variant == "A"
        assert exp.total_weight() == 4

    def test_weights_are_relative(self):
        exp = ExperimentConfig(
            experiment_id="test",
            variants=[VariantConfig(variant_id="A", weight=250), VariantConfig(variant_id="B", weight=0.5)],
        )
        assert exp.total_weight() == 250.5

    @pytest.mark.parametrize("weight", [0, -1, float("inf"), float("nan")])
    def test_weight_must_be_positive_and_finite(self, weight):
        with pytest.raises(ValidationError):
            VariantConfig(variant_id="A", weight=weight)

    def test_needs_at_least_one_variant(self):
        with pytest.raises(ValidationError):
            ExperimentConfig(experiment_id="test", variants=[])

    def test_variant_ids_must_be_unique(self):
        with pytest.raises(ValidationError, match="unique"):
            ExperimentConfig.model_validate(
                {"id": "test", "variants": [{"id": "A", "weight": 1}, {"id": "A", "weight": 1}]}
            )

    def test_default_variant_must_exist(self):
        with pytest.raises(ValidationError, match="not a variant"):
            ExperimentConfig.model_validate(
                {
                    "id": "test",
                    "variants": [{"id": "A", "weight": 1}],
                    "defaultVariant": "Z",
                }
            )

    def test_experiment_is_immutable(self):
        exp = ExperimentConfig.model_validate(
            {"id": "test", "variants": [{"id": "A", "weight": 1}]}
        )
        with pytest.raises(ValidationError):
            exp.default_variant = "A"


class TestExperimentRepository:
    def test_default_experiments_loaded(self, experiment_repo):
        ids = [exp.experiment_id for exp in experiment_repo.list_experiments()]
        assert ids == ["cta-button-text", "marketplace-layout", "price-display", "cta-color"]

    def test_lookup(self, experiment_repo):
        exp = experiment_repo.get_experiment("price-display")
        assert exp.variant_ids() == ["standard", "annual"]
        assert exp.default_variant == "standard"

    def test_unknown_lookup_returns_none(self, experiment_repo):
        assert experiment_repo.get_experiment("nonexistent-experiment-id") is None
        assert "nonexistent-experiment-id" not in experiment_repo

    def test_id_taken_from_key(self):
        repo = ExperimentRepository({"exp": {"variants": [{"id": "A", "weight": 1}]}})
        assert repo.get_experiment("exp").experiment_id == "exp"

    def test_mismatched_id_rejected(self):
        with pytest.raises(ValueError, match="declares id"):
            ExperimentRepository({"exp": {"id": "other", "variants": [{"id": "A", "weight": 1}]}})

    def test_registry_is_read_only(self, experiment_repo):
        with pytest.raises(TypeError):
            experiment_repo.experiments["new"] = experiment_repo.get_experiment("cta-color")

    def test_source_mapping_changes_do_not_leak(self):
        source = {"exp": {"variants": [{"id": "A", "weight": 1}]}}
        repo = ExperimentRepository(source)
        source["other"] = {"variants": [{"id": "B", "weight": 1}]}
        assert repo.get_experiment("other") is None
        assert len(repo) == 1

    def test_from_file(self, tmp_path):
        path = tmp_path / "experiments.json"
        path.write_text(json.dumps(DEFAULT_EXPERIMENTS))
        repo = ExperimentRepository.from_file(path)
        assert len(repo) == len(DEFAULT_EXPERIMENTS)
        assert repo.get_experiment("cta-color").variant_ids() == ["primary", "green", "orange"]

    def test_from_file_rejects_non_object(self, tmp_path):
        path = tmp_path / "experiments.json"
        path.write_text("[]")
        with pytest.raises(ValueError, match="JSON object"):
            ExperimentRepository.from_file(path)
