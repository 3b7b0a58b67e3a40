"""Property record models.

Field names are snake_case in Python and camelCase on the wire
(``rentalYield``, ``createdAt``, ``pageSize``). Both spellings are accepted
on input.
"""

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "str_strip_whitespace": True,
    "coerce_numbers_to_str": True,
}


class PropertyFields(BaseModel):
    """The three client-supplied fields of a property.

    All three are required. Numeric strings are coerced to floats and
    numbers are coerced to strings for ``location``; anything else fails
    validation.
    """

    price: float = Field(..., allow_inf_nan=False, description="Asking price")
    location: str = Field(..., min_length=1, description="City or area")
    rental_yield: float = Field(
        ..., allow_inf_nan=False, description="Gross rental yield percentage"
    )

    model_config = _MODEL_CONFIG


class PropertyCreate(PropertyFields):
    """Request body for creating a property."""


class PropertyUpdate(PropertyFields):
    """Request body for replacing a property's fields.

    Updates are full replacements: omitting a field is a validation error
    rather than clearing it.
    """


class Property(PropertyFields):
    """A stored property record."""

    id: str = Field(..., min_length=1, description="Store-assigned identifier")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime = Field(..., description="Last modification time (UTC)")


class PropertyPage(BaseModel):
    """One page of query results."""

    items: list[Property]
    total: int = Field(..., ge=0, description="Matching records before pagination")
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, le=100)

    model_config = _MODEL_CONFIG
