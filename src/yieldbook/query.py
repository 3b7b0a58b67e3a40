"""Query engine for property listings.

Turns raw request parameters into a normalized ``QuerySpec`` and applies it
to an in-process sequence of records. The durable store translates the same
spec into SQL (see ``storage.postgres``); both must return the same page for
the same data.

Parsing is lenient: bad numbers and page values fall back to "absent" or to
the defaults instead of raising.

Example:
    spec = parse_query(q="paris", sort_by="price", order="asc")
    items, total = spec.apply(records)
"""

import math
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .models.property import Property

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Leading integer, the way a browser's parseInt reads "2", "2.5" or "3abc"
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class SortKey(str, Enum):
    """Sortable fields, by their wire name."""

    PRICE = "price"
    LOCATION = "location"
    RENTAL_YIELD = "rentalYield"
    CREATED_AT = "createdAt"

    @property
    def attribute(self) -> str:
        """Attribute name on ``Property`` (and column name in Postgres)."""
        return _SORT_ATTRIBUTES[self]


_SORT_ATTRIBUTES = {
    SortKey.PRICE: "price",
    SortKey.LOCATION: "location",
    SortKey.RENTAL_YIELD: "rental_yield",
    SortKey.CREATED_AT: "created_at",
}


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class NumericRange:
    """Inclusive numeric bounds; either side may be open."""

    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def is_set(self) -> bool:
        return self.min is not None or self.max is not None

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


@dataclass(frozen=True)
class QuerySpec:
    """Normalized filter, sort and pagination parameters.

    Attributes:
        text: Case-insensitive substring to look for in ``location``
        price: Inclusive bounds on ``price``
        rental_yield: Inclusive bounds on ``rental_yield``
        sort_key: Field to order by
        sort_order: Ascending or descending
        page: 1-based page number
        page_size: Records per page, between 1 and ``MAX_PAGE_SIZE``
    """

    text: Optional[str] = None
    price: NumericRange = field(default_factory=NumericRange)
    rental_yield: NumericRange = field(default_factory=NumericRange)
    sort_key: SortKey = SortKey.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}"
            )

    @property
    def offset(self) -> int:
        """Number of matching records skipped before this page."""
        return (self.page - 1) * self.page_size

    @property
    def descending(self) -> bool:
        return self.sort_order is SortOrder.DESC

    def matches(self, record: Property) -> bool:
        """Check a record against the text filter and both ranges."""
        if self.text is not None and self.text.lower() not in record.location.lower():
            return False
        return self.price.contains(record.price) and self.rental_yield.contains(
            record.rental_yield
        )

    def sort(self, records: Iterable[Property]) -> list[Property]:
        """Stable sort by ``sort_key``.

        Records comparing equal keep their incoming order in both directions,
        so ties stay newest-first when fed the store's newest-first list.
        """
        return sorted(records, key=self._sort_value, reverse=self.descending)

    def paginate(self, records: list[Property]) -> list[Property]:
        return records[self.offset : self.offset + self.page_size]

    def apply(self, records: Iterable[Property]) -> tuple[list[Property], int]:
        """Filter, sort, then paginate.

        Returns:
            Tuple of (records on this page, total matching records)
        """
        matched = [record for record in records if self.matches(record)]
        ordered = self.sort(matched)
        return self.paginate(ordered), len(ordered)

    def _sort_value(self, record: Property):
        if self.sort_key is SortKey.LOCATION:
            return (location_sort_key(record.location), record.location)
        return getattr(record, self.sort_key.attribute)


def location_sort_key(location: str) -> str:
    """Collation key for ordering locations.

    Diacritics are removed and case is folded, so "Évry" sorts as "evry"
    between "Amiens" and "Lyon". Locations with equal keys fall back to
    their raw text. The Postgres store persists this key in ``location_key``
    and compares it byte-wise, so both stores order the same way.
    """
    text = unicodedata.normalize("NFD", location)
    text = "".join(c for c in text if unicodedata.category(c) != "Mn")
    return text.casefold()


def _parse_number(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    match = _LEADING_INT.match(raw)
    if not match:
        return default
    # zero counts as "not given", as with parseInt(...) || default
    return int(match.group(1)) or default


def _parse_range(low: Optional[str], high: Optional[str]) -> NumericRange:
    return NumericRange(min=_parse_number(low), max=_parse_number(high))


def parse_query(
    q: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    min_yield: Optional[str] = None,
    max_yield: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
) -> QuerySpec:
    """Build a QuerySpec from raw query-string values.

    Args:
        q: Location substring; empty means no text filter
        min_price: Lower price bound
        max_price: Upper price bound
        min_yield: Lower rental yield bound
        max_yield: Upper rental yield bound
        sort_by: One of price, location, rentalYield, createdAt
            (anything else sorts by createdAt)
        order: "asc" for ascending, anything else descending
        page: Page number, default 1
        page_size: Page size, default 20, clamped to [1, 100]

    Returns:
        The normalized QuerySpec. Never raises on bad input.
    """
    try:
        sort_key = SortKey(sort_by)
    except ValueError:
        sort_key = SortKey.CREATED_AT

    sort_order = (
        SortOrder.ASC if (order or "").strip().lower() == SortOrder.ASC.value else SortOrder.DESC
    )

    return QuerySpec(
        text=q or None,
        price=_parse_range(min_price, max_price),
        rental_yield=_parse_range(min_yield, max_yield),
        sort_key=sort_key,
        sort_order=sort_order,
        page=max(_parse_int(page, DEFAULT_PAGE), 1),
        page_size=min(max(_parse_int(page_size, DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE),
    )
