"""Ad Ops Hub - Storage Models (Sheet Cells & Cache Entries)."""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field, UniqueConstraint


class SheetCell(SQLModel, table=True):
    """One non-empty cell of a locally stored sheet.

    Unique on (sheet_name, row, col) so writes are upserts.
    """

    __tablename__ = "sheet_cells"
    __table_args__ = (
        UniqueConstraint("sheet_name", "row", "col", name="uq_sheet_cell"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    sheet_name: str = Field(index=True, description="Sheet (tab) name")
    row: int = Field(index=True, description="1-based row")
    col: int = Field(description="1-based column")
    value_json: str = Field(description="Raw cell value as JSON")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SheetRegistry(SQLModel, table=True):
    """Known sheets, so an empty sheet still exists."""

    __tablename__ = "sheets"

    name: str = Field(primary_key=True)
    max_rows: int = Field(default=1000, description="Grid size, like a spreadsheet tab")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CacheEntry(SQLModel, table=True):
    """Serialized cache payload with its own TTL.

    Entries are replaced or deleted, never edited in place.
    """

    __tablename__ = "cache_entries"

    key: str = Field(primary_key=True)
    payload: str = Field(description="Serialized payload")
    created_at: float = Field(description="Unix timestamp of the write")
    ttl_seconds: int = Field(description="Lifetime in seconds")
