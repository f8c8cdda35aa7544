"""
Base schemas shared by the capacity engine results and request DTOs.
"""

from pydantic import BaseModel, ConfigDict


class StandardizedModel(BaseModel):
    """Base model with standardized JSON encoding"""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)


class FrozenModel(StandardizedModel):
    """Immutable value object; results handed back by validators are never edited."""

    model_config = ConfigDict(frozen=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)
