"""Ad Ops Hub - Database-Backed Sheet Store.

Keeps sheets as sparse cell rows in the ``sheet_cells`` table. Used for local
runs, for imported campaign logs, and in tests.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, List, Sequence

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from adops.connectors.sheets.base import SheetSource
from adops.core.errors import SourceNotFoundError
from adops.models.storage_models import SheetCell, SheetRegistry
from adops.core.logging import get_logger

logger = get_logger("sheets.database")


def _encode(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return json.dumps(value.isoformat())
    return json.dumps(value)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


class DatabaseSheetSource(SheetSource):
    """Sheet stored in the application database."""

    def __init__(self, sheet_name: str, engine: Engine):
        super().__init__(sheet_name)
        self.engine = engine

    def _registry(self, session: Session) -> SheetRegistry:
        sheet = session.get(SheetRegistry, self.sheet_name)
        if sheet is None:
            raise SourceNotFoundError(self.sheet_name)
        return sheet

    async def exists(self) -> bool:
        with Session(self.engine) as session:
            return session.get(SheetRegistry, self.sheet_name) is not None

    async def create(self, max_rows: int = 1000) -> None:
        with Session(self.engine) as session:
            if session.get(SheetRegistry, self.sheet_name) is None:
                session.add(SheetRegistry(name=self.sheet_name, max_rows=max_rows))
                session.commit()
                logger.info(f"Created sheet {self.sheet_name}", extra={"sheet": self.sheet_name})

    async def read_range(
        self, row: int, col: int, num_rows: int, num_cols: int
    ) -> List[List[Any]]:
        grid: List[List[Any]] = [[""] * num_cols for _ in range(num_rows)]
        with Session(self.engine) as session:
            self._registry(session)
            cells = session.exec(
                select(SheetCell).where(
                    SheetCell.sheet_name == self.sheet_name,
                    SheetCell.row >= row,
                    SheetCell.row < row + num_rows,
                    SheetCell.col >= col,
                    SheetCell.col < col + num_cols,
                )
            ).all()
        for cell in cells:
            grid[cell.row - row][cell.col - col] = json.loads(cell.value_json)
        return grid

    def _put(self, session: Session, row: int, col: int, value: Any) -> None:
        existing = session.exec(
            select(SheetCell).where(
                SheetCell.sheet_name == self.sheet_name,
                SheetCell.row == row,
                SheetCell.col == col,
            )
        ).first()
        if _is_blank(value):
            if existing:
                session.delete(existing)
            return
        if existing:
            existing.value_json = _encode(value)
            existing.updated_at = datetime.now(timezone.utc)
            session.add(existing)
        else:
            session.add(
                SheetCell(
                    sheet_name=self.sheet_name,
                    row=row,
                    col=col,
                    value_json=_encode(value),
                )
            )

    async def write_cell(self, row: int, col: int, value: Any) -> None:
        await self.write_range(row, col, [[value]])

    async def write_range(self, row: int, col: int, values: Sequence[Sequence[Any]]) -> None:
        with Session(self.engine) as session:
            sheet = self._registry(session)
            for r_offset, row_values in enumerate(values):
                for c_offset, value in enumerate(row_values):
                    self._put(session, row + r_offset, col + c_offset, value)
            bottom = row + len(values) - 1
            if bottom > sheet.max_rows:
                sheet.max_rows = bottom
                session.add(sheet)
            session.commit()

    async def clear(self) -> None:
        with Session(self.engine) as session:
            self._registry(session)
            cells = session.exec(
                select(SheetCell).where(SheetCell.sheet_name == self.sheet_name)
            ).all()
            for cell in cells:
                session.delete(cell)
            session.commit()

    async def last_row_index(self) -> int:
        with Session(self.engine) as session:
            self._registry(session)
            last = session.exec(
                select(func.max(SheetCell.row)).where(SheetCell.sheet_name == self.sheet_name)
            ).one()
        return last or 0

    async def last_column_index(self) -> int:
        with Session(self.engine) as session:
            self._registry(session)
            last = session.exec(
                select(func.max(SheetCell.col)).where(SheetCell.sheet_name == self.sheet_name)
            ).one()
        return last or 0

    async def max_rows(self) -> int:
        with Session(self.engine) as session:
            sheet = self._registry(session)
            return sheet.max_rows
