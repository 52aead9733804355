"""Shared fixtures: in-memory database, seeded sheets and a controllable clock."""

from datetime import date
from typing import Any, Dict, List

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from adops.config import DEFAULT_COLUMNS
from adops.connectors.sheets.database_store import DatabaseSheetSource
from adops.database import init_db

SOURCE = "Weekly log_Thomas W"
PERMISSIONS = "Permissions"
WIDTH = max(DEFAULT_COLUMNS.values())  # 43
TODAY = date(2025, 8, 15)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def header_row() -> List[Any]:
    header: List[Any] = [f"Col {i}" for i in range(1, WIDTH + 1)]
    names = {
        "campaign_id": "Campaign ID",
        "client": "Client",
        "platform": "Platform",
        "ad_format": "Ad Format",
        "budget": "Meta Budget",
        "campaign_type": "Campaign Type",
        "status": "Status",
        "start_date": "Start Date",
        "end_date": "End Date",
        "remarks": "Remarks",
        "guide_link": "Guide Link",
    }
    for field, name in names.items():
        header[DEFAULT_COLUMNS[field] - 1] = name
    return header


def campaign_row(**fields: Any) -> List[Any]:
    """A full-width sheet row with ``fields`` placed at their configured columns."""
    row: List[Any] = [""] * WIDTH
    for field, value in fields.items():
        row[DEFAULT_COLUMNS[field] - 1] = value
    return row


@pytest.fixture
def engine():
    """Fresh in-memory SQLite with all tables."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    return eng


@pytest.fixture
def clock():
    return FakeClock()


async def seed_sheet(engine, name: str, rows: List[List[Any]]) -> DatabaseSheetSource:
    sheet = DatabaseSheetSource(name, engine)
    await sheet.create()
    if rows:
        await sheet.write_range(1, 1, rows)
    return sheet


async def seed_permissions(engine, roles: Dict[str, str]) -> DatabaseSheetSource:
    rows = [["Email", "Role"]] + [[email, role] for email, role in roles.items()]
    return await seed_sheet(engine, PERMISSIONS, rows)
