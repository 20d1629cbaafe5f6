"""Entry store domain package."""

from .errors import (
    EntryNotFoundError,
    EntryQueryError,
    EntryServiceError,
    EntryValidationError,
)
from .gateway import (
    EntryListFilters,
    EntryStoreGateway,
    InMemoryEntryStoreGateway,
    PostgresEntryStoreGateway,
    SortDirection,
    SortField,
    build_entry_store_gateway,
)
from .listing import EntryListing, ListingQuery, compose_listing, parse_listing_query
from .models import Entry
from .service import EntryService

__all__ = [
    "Entry",
    "EntryListFilters",
    "EntryListing",
    "EntryNotFoundError",
    "EntryQueryError",
    "EntryService",
    "EntryServiceError",
    "EntryStoreGateway",
    "EntryValidationError",
    "InMemoryEntryStoreGateway",
    "ListingQuery",
    "PostgresEntryStoreGateway",
    "SortDirection",
    "SortField",
    "build_entry_store_gateway",
    "compose_listing",
    "parse_listing_query",
]
