from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VariantConfig(BaseModel):
    """One alternative within an experiment and its relative selection weight."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    variant_id: str = Field(..., alias="id", min_length=1)
    # Weights are relative magnitudes, not percentages: 9 and 1 is a 90/10 split
    weight: float = Field(..., gt=0, allow_inf_nan=False)


class ExperimentConfig(BaseModel):
    """A named A/B test: an ordered set of variants plus an optional default."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    experiment_id: str = Field(..., alias="id", min_length=1)
    # Order is preserved; selection walks the variants in this order
    variants: Tuple[VariantConfig, ...] = Field(..., min_length=1)
    default_variant: Optional[str] = Field(None, alias="defaultVariant")

    @model_validator(mode="after")
    def _check_variants(self) -> "ExperimentConfig":
        ids = self.variant_ids()
        if len(ids) != len(set(ids)):
            raise ValueError(
                f"Variant ids must be unique within experiment {self.experiment_id!r}"
            )
        if self.default_variant is not None and self.default_variant not in ids:
            raise ValueError(
                f"Default variant {self.default_variant!r} is not a variant of "
                f"experiment {self.experiment_id!r}"
            )
        return self

    def variant_ids(self) -> List[str]:
        return [variant.variant_id for variant in self.variants]

    def has_variant(self, variant_id: Optional[str]) -> bool:
        return any(variant.variant_id == variant_id for variant in self.variants)

    def get_variant(self, variant_id: str) -> Optional[VariantConfig]:
        for variant in self.variants:
            if variant.variant_id == variant_id:
                return variant
        return None

    def total_weight(self) -> float:
        return sum(variant.weight for variant in self.variants)


# --- API responses ---


class VariantSummaryModel(BaseModel):
    variant_id: str
    weight: float
    percentage: int = Field(..., ge=0, le=100, description="Rounded share of traffic.")


class ExperimentSummaryModel(BaseModel):
    """An experiment as listed by the debug endpoints."""

    experiment_id: str
    default_variant: Optional[str] = None
    variants: List[VariantSummaryModel]


class VariantResponseModel(BaseModel):
    """The variant resolved for the current visitor."""

    experiment_id: str
    variant_id: str
    percentage: int = Field(
        ..., ge=0, le=100, description="Rounded share of traffic for this variant."
    )


class ForceVariantModel(BaseModel):
    variant_id: str = Field(..., min_length=1)


class DebugOverridesModel(BaseModel):
    """Variants forced through the debug query parameter of the current request."""

    requested: Dict[str, str] = Field(default_factory=dict, description="Every parsed directive.")
    active: Dict[str, str] = Field(
        default_factory=dict, description="Directives naming a configured variant; these take effect."
    )
