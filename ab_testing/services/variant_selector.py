import random
from typing import Optional, Sequence

from ab_testing.models.schemas.experiment import VariantConfig


class VariantSelector:
    """
    Weighted random choice of a variant.

    Each variant is picked with probability ``weight / total_weight``. The
    random source is injected so that tests can seed it.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    def select(self, variants: Sequence[VariantConfig]) -> str:
        """
        Draws ``r`` from ``[0, total_weight)`` and returns the first variant
        whose cumulative weight is strictly greater than ``r``. A draw landing
        exactly on a boundary goes to the next variant.
        """
        if not variants:
            raise ValueError("Cannot select a variant from an empty variant set.")

        total_weight = sum(variant.weight for variant in variants)
        r = self.rng.random() * total_weight

        cumulative_weight = 0.0
        for variant in variants:
            cumulative_weight += variant.weight
            if r < cumulative_weight:
                return variant.variant_id

        # Floating point edge case, not reachable with positive weights
        return variants[-1].variant_id
