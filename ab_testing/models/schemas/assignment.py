from typing import Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AssignmentModel(BaseModel):
    """A visitor's resolved variant for one experiment, as stored in the cookie."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    experiment_id: str
    variant_id: str = Field(..., description="The id of the variant the visitor was assigned.")
    # Epoch milliseconds
    assigned_at: int = Field(..., ge=0)


# Experiment id -> assignment; one per visitor, serialized as a single cookie
AssignmentSet = Dict[str, AssignmentModel]
