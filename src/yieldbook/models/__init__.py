"""Data models for yieldbook."""

from yieldbook.models.property import (
    Property,
    PropertyCreate,
    PropertyPage,
    PropertyUpdate,
)

__all__ = [
    "Property",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyPage",
]
