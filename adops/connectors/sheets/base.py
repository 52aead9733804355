"""Ad Ops Hub - Abstract Sheet Source."""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence, Tuple


class SheetSource(ABC):
    """A rectangular range of cells addressed 1-based, row 1 = header.

    Implementations return raw cell values (str, int, float, date or "")
    and pad short rows with "" so every returned row has ``num_cols`` cells.
    """

    def __init__(self, sheet_name: str):
        self.sheet_name = sheet_name

    @abstractmethod
    async def exists(self) -> bool:
        """Check whether the sheet is present."""
        ...

    @abstractmethod
    async def create(self) -> None:
        """Create the sheet if it is missing."""
        ...

    @abstractmethod
    async def read_range(
        self, row: int, col: int, num_rows: int, num_cols: int
    ) -> List[List[Any]]:
        """Read a block of raw cell values."""
        ...

    @abstractmethod
    async def write_cell(self, row: int, col: int, value: Any) -> None:
        """Write a single cell."""
        ...

    @abstractmethod
    async def write_range(self, row: int, col: int, values: Sequence[Sequence[Any]]) -> None:
        """Write a block of cells starting at (row, col)."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove every cell value, keeping the sheet."""
        ...

    @abstractmethod
    async def last_row_index(self) -> int:
        """Index of the last row holding any value; 0 for an empty sheet."""
        ...

    @abstractmethod
    async def last_column_index(self) -> int:
        """Index of the last column holding any value; 0 for an empty sheet."""
        ...

    @abstractmethod
    async def max_rows(self) -> int:
        """Grid height of the sheet, including empty rows."""
        ...

    async def used_bounds(self) -> Tuple[int, int]:
        """(last row, last column) of the used range.

        Backends that learn both from a single read should override this.
        """
        return await self.last_row_index(), await self.last_column_index()

    async def read_all(self) -> List[List[Any]]:
        """Read the whole used range."""
        last_row, last_col = await self.used_bounds()
        if last_row == 0 or last_col == 0:
            return []
        return await self.read_range(1, 1, last_row, last_col)
