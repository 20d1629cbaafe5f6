"""Error taxonomy surfaced by the entry store and listing composer."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, List, Mapping


class EntryServiceError(Exception):
    """Domain exception propagated to API handlers."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "LEDGER-ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EntryValidationError(EntryServiceError):
    """One or more entry fields are missing or invalid."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    error_code = "LEDGER-INVALID-ENTRY"

    def __init__(self, errors: Mapping[str, List[str]]) -> None:
        fields = sorted(errors)
        super().__init__(
            f"Entry is invalid: {', '.join(fields)}",
            details={field: list(errors[field]) for field in fields},
        )

    @property
    def errors(self) -> Dict[str, List[str]]:
        return self.details


class EntryNotFoundError(EntryServiceError):
    status_code = HTTPStatus.NOT_FOUND
    error_code = "LEDGER-NOT-FOUND"

    def __init__(self, entry_id: int) -> None:
        super().__init__(
            f"Entry '{entry_id}' not found",
            details={"id": entry_id},
        )
        self.entry_id = entry_id


class EntryQueryError(EntryServiceError):
    """Listing parameters outside the allowed values."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "LEDGER-INVALID-QUERY"

    def __init__(self, message: str, *, parameter: str, value: Any) -> None:
        super().__init__(message, details={parameter: value})
        self.parameter = parameter
