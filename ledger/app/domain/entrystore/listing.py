"""Paginated, ordered and searchable entry listings.

Request parameters arrive as untrusted text. ``parse_listing_query`` turns
them into a bounded :class:`ListingQuery` (allow-listed sort column,
normalized direction, clamped page numbers) and ``compose_listing`` runs
the query against an :class:`EntryStoreGateway`:

1. restrict to entries whose name matches the search term (if any);
2. order by the requested column, ties broken by ascending id;
3. count the filtered set and derive ``last_page``;
4. slice out the requested page.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import EntryQueryError
from .gateway import (
    EntryListFilters,
    EntryStoreGateway,
    SortDirection,
    SortField,
    tokenize_search_term,
)
from .models import Entry

DEFAULT_ORDER_BY = SortField.ID
DEFAULT_DIRECTION = SortDirection.ASC
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 25
MAX_PER_PAGE = 100
MAX_SEARCH_LENGTH = 256

_LEADING_INT = re.compile(r"\s*([+-]?)0*(\d+)")
# Longer digit runs saturate; page numbers past this are past any real table.
MAX_COERCED_INT = 10**18
_MAX_COERCED_DIGITS = len(str(MAX_COERCED_INT))


@dataclass(frozen=True)
class ListingQuery:
    sort_field: SortField = DEFAULT_ORDER_BY
    direction: SortDirection = DEFAULT_DIRECTION
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    search: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def terms(self) -> tuple[str, ...]:
        return tokenize_search_term(self.search)


@dataclass(frozen=True)
class EntryListing:
    """Listing envelope: one page of entries plus the query that produced it."""

    result: List[Entry] = field(default_factory=list)
    direction: str = DEFAULT_DIRECTION.value
    order_by: str = DEFAULT_ORDER_BY.value
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    search: Optional[str] = None
    total: int = 0
    last_page: int = 0


def parse_listing_query(
    *,
    order_by: Optional[str] = None,
    direction: Optional[str] = None,
    page: Any = None,
    per_page: Any = None,
    search: Optional[str] = None,
    default_per_page: int = DEFAULT_PER_PAGE,
    max_per_page: int = MAX_PER_PAGE,
) -> ListingQuery:
    """Validate raw listing parameters.

    Raises :class:`EntryQueryError` for an unknown ``order_by`` column or a
    ``direction`` other than ASC/DESC. A ``per_page`` above ``max_per_page``
    and a ``search`` longer than ``MAX_SEARCH_LENGTH`` are rejected too.
    ``page`` below 1 clamps to 1 and a negative ``per_page`` clamps to 0;
    digit runs too long for an int saturate at ``MAX_COERCED_INT``.
    """

    sort_field = _parse_sort_field(order_by)
    sort_direction = _parse_direction(direction)
    page_number = max(_coerce_int(page, DEFAULT_PAGE), 1)
    page_size = max(_coerce_int(per_page, default_per_page), 0)
    if page_size > max_per_page:
        raise EntryQueryError(
            f"per_page must not exceed {max_per_page}",
            parameter="per_page",
            value=page_size,
        )
    return ListingQuery(
        sort_field=sort_field,
        direction=sort_direction,
        page=page_number,
        per_page=page_size,
        search=_normalize_search(search),
    )


def compose_listing(gateway: EntryStoreGateway, query: ListingQuery) -> EntryListing:
    """Run ``query`` against ``gateway`` and build the listing envelope."""

    terms = query.terms
    if query.search is not None and not terms:
        # Nothing searchable in the term, so nothing can match.
        return _envelope(query, result=[], total=0)

    filters = EntryListFilters(
        terms=terms,
        sort_field=query.sort_field,
        direction=query.direction,
        limit=query.per_page,
        offset=query.offset,
    )
    total = gateway.count(filters)
    if query.per_page == 0 or query.offset >= total:
        return _envelope(query, result=[], total=total)
    return _envelope(query, result=gateway.list_entries(filters), total=total)


def last_page_for(total: int, per_page: int) -> int:
    if per_page <= 0:
        return 0
    return math.ceil(total / per_page)


def _envelope(query: ListingQuery, *, result: List[Entry], total: int) -> EntryListing:
    return EntryListing(
        result=result,
        direction=query.direction.value,
        order_by=query.sort_field.value,
        page=query.page,
        per_page=query.per_page,
        search=query.search,
        total=total,
        last_page=last_page_for(total, query.per_page),
    )


def _parse_sort_field(value: Optional[str]) -> SortField:
    if value is None or not value.strip():
        return DEFAULT_ORDER_BY
    try:
        return SortField(value.strip().lower())
    except ValueError:
        raise EntryQueryError(
            "Unsupported order_by column",
            parameter="order_by",
            value=value,
        ) from None


def _parse_direction(value: Optional[str]) -> SortDirection:
    if value is None or not value.strip():
        return DEFAULT_DIRECTION
    try:
        return SortDirection(value.strip().upper())
    except ValueError:
        raise EntryQueryError(
            "direction must be 'ASC' or 'DESC'",
            parameter="direction",
            value=value,
        ) from None


def _coerce_int(value: Any, default: int) -> int:
    """Leading-integer coercion: ``"3"`` -> 3, ``"3abc"`` -> 3, ``"abc"`` -> 0."""

    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = str(value)
    if not text.strip():
        return default
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    sign, digits = match.groups()
    if len(digits) >= _MAX_COERCED_DIGITS:
        number = MAX_COERCED_INT
    else:
        number = min(int(digits), MAX_COERCED_INT)
    return -number if sign == "-" else number


def _normalize_search(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if len(trimmed) > MAX_SEARCH_LENGTH:
        raise EntryQueryError(
            f"search must not exceed {MAX_SEARCH_LENGTH} characters",
            parameter="search",
            value=len(trimmed),
        )
    return trimmed
