"""Ledger entry endpoints: list, show, create, update, delete."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from ...api.dependencies import get_entry_service
from ...domain.entrystore import (
    Entry,
    EntryListing,
    EntryService,
    EntryServiceError,
)
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/v1/entries", tags=["entries"])
logger = get_logger(__name__)
metrics = get_metrics_client()

EntryId = Annotated[int, Path(..., description="Entry identifier.")]


class EntryRecord(BaseModel):
    """API representation of a ledger entry."""

    id: int
    name: str
    description: Optional[str] = None
    date: dt.date
    value: Decimal
    created_at: dt.datetime
    updated_at: dt.datetime


class EntryListResponse(BaseModel):
    """Listing envelope for GET /api/v1/entries."""

    result: List[EntryRecord] = Field(default_factory=list)
    direction: str
    order_by: str
    page: int
    per_page: int
    search: Optional[str] = None
    total: int
    last_page: int


class EntryWriteRequest(BaseModel):
    """Request body for POST, PATCH and PUT; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    value: Optional[Decimal] = None


@router.get(
    "",
    response_model=EntryListResponse,
    summary="List entries",
)
def list_entries(
    order_by: Annotated[
        Optional[str], Query(description="Column to order by (default id).")
    ] = None,
    direction: Annotated[
        Optional[str], Query(description="ASC or DESC (default ASC).")
    ] = None,
    page: Annotated[Optional[str], Query(description="1-based page number.")] = None,
    per_page: Annotated[Optional[str], Query(description="Page size.")] = None,
    search: Annotated[
        Optional[str],
        Query(description="Any-word prefix search over entry names."),
    ] = None,
    service: EntryService = Depends(get_entry_service),
) -> EntryListResponse:
    metrics.increment("entries_list_http_total")
    try:
        listing = service.list(
            order_by=order_by,
            direction=direction,
            page=page,
            per_page=per_page,
            search=search,
        )
    except EntryServiceError as exc:
        raise _handle_service_error(exc) from exc
    return _serialize_listing(listing)


@router.get(
    "/{entry_id}",
    response_model=EntryRecord,
    summary="Retrieve entry",
)
def get_entry(
    entry_id: EntryId,
    service: EntryService = Depends(get_entry_service),
) -> EntryRecord:
    try:
        entry = service.find(entry_id)
    except EntryServiceError as exc:
        raise _handle_service_error(exc) from exc
    return _to_record(entry)


@router.post(
    "",
    response_model=EntryRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create entry",
)
def create_entry(
    payload: EntryWriteRequest,
    service: EntryService = Depends(get_entry_service),
) -> EntryRecord:
    try:
        entry = service.create(payload.model_dump(exclude_unset=True))
    except EntryServiceError as exc:
        raise _handle_service_error(exc) from exc
    return _to_record(entry)


@router.patch(
    "/{entry_id}",
    response_model=EntryRecord,
    summary="Update entry",
)
@router.put(
    "/{entry_id}",
    response_model=EntryRecord,
    summary="Update entry",
)
def update_entry(
    entry_id: EntryId,
    payload: Optional[EntryWriteRequest] = None,
    service: EntryService = Depends(get_entry_service),
) -> EntryRecord:
    changes = payload.model_dump(exclude_unset=True) if payload else {}
    try:
        entry = service.update(entry_id, changes)
    except EntryServiceError as exc:
        raise _handle_service_error(exc) from exc
    return _to_record(entry)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete entry",
)
def delete_entry(
    entry_id: EntryId,
    service: EntryService = Depends(get_entry_service),
) -> Response:
    try:
        service.delete(entry_id)
    except EntryServiceError as exc:
        raise _handle_service_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _to_record(entry: Entry) -> EntryRecord:
    return EntryRecord(
        id=entry.id,
        name=entry.name,
        description=entry.description,
        date=entry.date,
        value=entry.value,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _serialize_listing(listing: EntryListing) -> EntryListResponse:
    return EntryListResponse(
        result=[_to_record(entry) for entry in listing.result],
        direction=listing.direction,
        order_by=listing.order_by,
        page=listing.page,
        per_page=listing.per_page,
        search=listing.search,
        total=listing.total,
        last_page=listing.last_page,
    )


def _handle_service_error(exc: EntryServiceError) -> HTTPException:
    metrics.increment(f"entries_http_{int(exc.status_code)}_total")
    return HTTPException(
        status_code=int(exc.status_code),
        detail={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )
