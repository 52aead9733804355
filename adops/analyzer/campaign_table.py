"""Ad Ops Hub - Campaign Table.

Typed view of the campaign log. Column references are resolved once, at
construction, and every data row is sanitized into a CampaignRecord.
"""

from typing import Any, Dict, List, Optional, Sequence

from adops.connectors.sheets.base import SheetSource
from adops.core.columns import ColumnMapping, resolve_mapping
from adops.core.errors import SourceNotFoundError
from adops.core.sanitize import clean_text, is_present, parse_date, parse_number
from adops.models.campaign_models import CampaignRecord
from adops.core.logging import get_logger

logger = get_logger("analyzer.table")

TEXT_FIELDS = ("client", "platform", "ad_format", "campaign_type", "status")
OPAQUE_FIELDS = ("campaign_id", "remarks", "guide_link")
DATE_FIELDS = ("start_date", "end_date")


def _opaque(value: Any) -> Any:
    if not is_present(value):
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return str(value)


class CampaignTable:
    """Campaign records backed by a block of raw cells.

    ``positions`` maps each field to its absolute 1-based column;
    ``first_col`` is the absolute column of ``data[i][0]``.
    """

    def __init__(
        self,
        positions: Dict[str, int],
        data: Sequence[Sequence[Any]],
        first_col: int = 1,
    ):
        self.positions = positions
        self.data = data
        self.first_col = first_col
        self._records: Optional[List[CampaignRecord]] = None

    @classmethod
    def from_cells(
        cls, cells: Sequence[Sequence[Any]], mapping: ColumnMapping
    ) -> "CampaignTable":
        """Build from a full block whose first row is the header."""
        if not cells:
            return cls(positions={}, data=[])
        header = list(cells[0])
        width = max(len(row) for row in cells)
        positions = resolve_mapping(mapping, header, width)
        return cls(positions=positions, data=cells[1:])

    def _cell(self, row: Sequence[Any], field: str) -> Any:
        position = self.positions.get(field)
        if position is None:
            return None
        offset = position - self.first_col
        return row[offset] if 0 <= offset < len(row) else None

    def _to_record(self, row: Sequence[Any]) -> CampaignRecord:
        values: Dict[str, Any] = {}
        for field in TEXT_FIELDS:
            values[field] = clean_text(self._cell(row, field))
        for field in OPAQUE_FIELDS:
            values[field] = _opaque(self._cell(row, field))
        for field in DATE_FIELDS:
            values[field] = parse_date(self._cell(row, field))
        values["budget"] = parse_number(self._cell(row, "budget"))
        return CampaignRecord(**values)

    def rows(self) -> List[CampaignRecord]:
        """All data rows in source order."""
        if self._records is None:
            self._records = [self._to_record(row) for row in self.data]
        return self._records

    def client_names(self) -> List[str]:
        """Sorted distinct client names."""
        return sorted({r.client for r in self.rows() if r.client is not None})

    def __len__(self) -> int:
        return len(self.data)


async def load_campaign_table(
    source: SheetSource, mapping: ColumnMapping
) -> CampaignTable:
    """Read the campaign log from ``source``.

    Only the column span between the leftmost and rightmost referenced
    columns is read for data rows.
    """
    if not await source.exists():
        raise SourceNotFoundError(source.sheet_name)

    last_row, width = await source.used_bounds()
    if last_row <= 1:
        return CampaignTable(positions={}, data=[])

    header = (await source.read_range(1, 1, 1, width))[0]
    positions = resolve_mapping(mapping, header, width)
    if not positions:
        return CampaignTable(positions={}, data=[])

    min_col = min(positions.values())
    max_col = max(positions.values())
    data = await source.read_range(2, min_col, last_row - 1, max_col - min_col + 1)
    logger.info(
        f"Loaded {len(data)} campaign rows (columns {min_col}..{max_col})",
        extra={"sheet": source.sheet_name},
    )
    return CampaignTable(positions=positions, data=data, first_col=min_col)
