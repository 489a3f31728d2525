from typing import Dict, Mapping, Optional

DEFAULT_DEBUG_PARAM = "ab_debug"


class DebugOverrideResolver:
    """
    Reads forced variants from the request's debug query parameter.

    Format: ``?ab_debug=experimentId:variantId``, several separated by commas
    (``?ab_debug=cta-button-text:B,cta-color:green``). Variants are not
    checked against the registry here.
    """

    def __init__(
        self,
        query_params: Optional[Mapping[str, str]] = None,
        param_name: str = DEFAULT_DEBUG_PARAM,
    ):
        self.query_params = query_params
        self.param_name = param_name

    def _directive(self) -> Optional[str]:
        if self.query_params is None:
            return None
        # QueryParams.get returns the first value of a repeated parameter
        return self.query_params.get(self.param_name) or None

    def resolve(self, experiment_id: str) -> Optional[str]:
        directive = self._directive()
        if not directive:
            return None

        for token in directive.split(","):
            parts = token.split(":")
            override_experiment_id = parts[0]
            variant_id = parts[1] if len(parts) > 1 else ""
            if override_experiment_id == experiment_id and variant_id:
                return variant_id

        return None

    def overrides(self) -> Dict[str, str]:
        """All directives in the parameter, first one per experiment wins."""
        directive = self._directive()
        if not directive:
            return {}

        result: Dict[str, str] = {}
        for token in directive.split(","):
            parts = token.split(":")
            if len(parts) > 1 and parts[1]:
                result.setdefault(parts[0], parts[1])
        return result
