"""Seed script for the ledger entries table.

Creates a handful of sample entries so local UIs and API calls have data
to read. Does nothing when the table already holds entries.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List

from ledger.app.config import load_settings
from ledger.app.domain.entrystore import EntryService, build_entry_store_gateway
from ledger.app.infra.logging import configure_logging


def build_seed_entries() -> List[dict[str, object]]:
    """Return static seed data for ledger entries."""

    return [
        {
            "name": "Salary",
            "description": "Monthly paycheck",
            "date": date(2024, 1, 31),
            "value": Decimal("4200.00"),
        },
        {
            "name": "Rent",
            "description": "January apartment rent",
            "date": date(2024, 1, 1),
            "value": Decimal("-1350.00"),
        },
        {
            "name": "Grocery store",
            "description": None,
            "date": date(2024, 1, 6),
            "value": Decimal("-87.45"),
        },
        {
            "name": "Electricity bill",
            "description": "Utility payment",
            "date": date(2024, 1, 15),
            "value": Decimal("-64.20"),
        },
        {
            "name": "Freelance invoice",
            "description": "Website maintenance for a client",
            "date": date(2024, 1, 22),
            "value": Decimal("650.00"),
        },
        {
            "name": "Grocery delivery",
            "description": None,
            "date": date(2024, 1, 27),
            "value": Decimal("-112.90"),
        },
    ]


def seed_entries() -> int:
    settings = load_settings()
    configure_logging(settings.logging)
    gateway = build_entry_store_gateway(ensure_schema=True)
    service = EntryService(gateway=gateway)
    if service.count():
        return 0
    records = build_seed_entries()
    for record in records:
        service.create(record)
    return len(records)


def main() -> None:
    inserted = seed_entries()
    print(f"Seeded {inserted} ledger entries.")


if __name__ == "__main__":
    main()
