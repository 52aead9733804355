"""Ad Ops Hub - Google Sheets Source.

SheetSource over one tab of a Google spreadsheet.
"""

from datetime import date, datetime
from typing import Any, List, Sequence, Tuple

from adops.connectors.sheets.base import SheetSource
from adops.connectors.sheets.client import GoogleSheetsClient, a1_range
from adops.core.columns import index_to_letter
from adops.core.errors import SourceNotFoundError


def _to_wire(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return "" if value is None else value


def _block(row: int, col: int, num_rows: int, num_cols: int) -> str:
    return (
        f"{index_to_letter(col)}{row}:"
        f"{index_to_letter(col + num_cols - 1)}{row + num_rows - 1}"
    )


class GoogleSheetSource(SheetSource):
    """A tab of a Google spreadsheet, addressed through the Sheets API."""

    def __init__(self, sheet_name: str, client: GoogleSheetsClient):
        super().__init__(sheet_name)
        self.client = client

    async def _properties(self) -> dict:
        sheets = await self.client.get_sheet_properties()
        if self.sheet_name not in sheets:
            raise SourceNotFoundError(self.sheet_name)
        return sheets[self.sheet_name]

    async def exists(self) -> bool:
        sheets = await self.client.get_sheet_properties()
        return self.sheet_name in sheets

    async def create(self) -> None:
        if not await self.exists():
            await self.client.add_sheet(self.sheet_name)

    async def read_range(
        self, row: int, col: int, num_rows: int, num_cols: int
    ) -> List[List[Any]]:
        values = await self.client.get_values(
            a1_range(self.sheet_name, _block(row, col, num_rows, num_cols))
        )
        # The API trims trailing empty rows and cells
        grid: List[List[Any]] = []
        for offset in range(num_rows):
            raw = values[offset] if offset < len(values) else []
            grid.append(list(raw[:num_cols]) + [""] * (num_cols - len(raw[:num_cols])))
        return grid

    async def write_cell(self, row: int, col: int, value: Any) -> None:
        await self.write_range(row, col, [[value]])

    async def write_range(self, row: int, col: int, values: Sequence[Sequence[Any]]) -> None:
        if not values:
            return
        width = max(len(r) for r in values)
        rows = [[_to_wire(v) for v in r] + [""] * (width - len(r)) for r in values]
        await self.client.update_values(
            a1_range(self.sheet_name, _block(row, col, len(rows), width)), rows
        )

    async def clear(self) -> None:
        await self.client.clear_values(a1_range(self.sheet_name))

    async def _used_values(self) -> list:
        await self._properties()
        return await self.client.get_values(a1_range(self.sheet_name))

    async def used_bounds(self) -> Tuple[int, int]:
        """Both bounds from one download of the used range."""
        values = await self._used_values()
        return len(values), max((len(r) for r in values), default=0)

    async def last_row_index(self) -> int:
        return (await self.used_bounds())[0]

    async def last_column_index(self) -> int:
        return (await self.used_bounds())[1]

    async def max_rows(self) -> int:
        props = await self._properties()
        return props.get("gridProperties", {}).get("rowCount", 0)
