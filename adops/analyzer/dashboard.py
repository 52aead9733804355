"""Ad Ops Hub - Dashboard Service.

Runs the read paths (dashboard view, campaign search) through the cache:
  cache hit → return | miss → read sheet → sanitize → aggregate → cache → return

and the write path (entry submission):
  authorize → locate next empty entry cell under lock → write → invalidate
"""

import asyncio
import time
from datetime import date
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from adops.config import settings
from adops.connectors.sheets.base import SheetSource
from adops.connectors.sheets.client import SheetsAPIError
from adops.core.access import AccessGate
from adops.core.cache import DashboardCache
from adops.core.columns import (
    ByName,
    ColumnMapping,
    parse_column_ref,
    positional_index,
    resolve_column,
)
from adops.core.errors import (
    InvalidInputError,
    PermissionDeniedError,
    SourceNotFoundError,
    UnresolvedColumnError,
)
from adops.core.sanitize import format_date
from adops.analyzer.aggregator import aggregate
from adops.analyzer.campaign_table import CampaignTable, load_campaign_table
from adops.models.campaign_models import (
    CampaignRecord,
    CampaignSearchResult,
    DashboardBase,
    DashboardPayload,
    ErrorPayload,
    SubmitResult,
)
from adops.core.logging import get_logger

logger = get_logger("analyzer.dashboard")

# Per-sheet append locks, owned by the app (``app.state.append_locks``)
AppendLocks = Dict[str, asyncio.Lock]

# Read-path failures reported to the UI as an error payload
READ_ERRORS = (SourceNotFoundError, UnresolvedColumnError, SheetsAPIError, SQLAlchemyError)


def display_name(identity: Optional[str]) -> str:
    """'jane.doe@example.com' -> 'Jane'."""
    if not identity:
        return "User"
    first = identity.split("@")[0].split(".")[0]
    return first[:1].upper() + first[1:] if first else "User"


def _search_row(record: CampaignRecord) -> CampaignSearchResult:
    return CampaignSearchResult(
        **record.model_dump(exclude={"start_date", "end_date"}),
        id=record.campaign_id,
        start_date=format_date(record.start_date),
        end_date=format_date(record.end_date),
    )


class DashboardService:
    """Dashboard query surface over one campaign log."""

    def __init__(
        self,
        source: SheetSource,
        gate: AccessGate,
        cache: DashboardCache,
        mapping: Optional[ColumnMapping] = None,
        entry_column: Union[int, str, None] = None,
        today: Callable[[], date] = date.today,
        append_locks: Optional[AppendLocks] = None,
    ):
        self.source = source
        self.gate = gate
        self.cache = cache
        self.mapping = mapping or ColumnMapping.from_config(settings.columns)
        self.entry_column = parse_column_ref(
            entry_column if entry_column is not None else settings.entry_column
        )
        self.today = today
        # Services sharing a registry serialize appends to the same sheet
        self.append_locks: AppendLocks = append_locks if append_locks is not None else {}

    def _append_lock(self) -> asyncio.Lock:
        name = self.source.sheet_name
        if name not in self.append_locks:
            self.append_locks[name] = asyncio.Lock()
        return self.append_locks[name]

    # ── Read Path ──

    async def _load_table(self) -> CampaignTable:
        return await load_campaign_table(self.source, self.mapping)

    async def build_base_data(self) -> DashboardBase:
        """Aggregate the sheet into the identity-independent dashboard payload."""
        started = time.perf_counter()
        table = await self._load_table()
        base = DashboardBase(
            charts=aggregate(table.rows(), today=self.today()),
            clients=table.client_names(),
        )
        logger.info(
            f"Built dashboard from {len(table)} rows",
            extra={"duration_ms": round((time.perf_counter() - started) * 1000, 1)},
        )
        return base

    def _cached_base(self) -> Optional[DashboardBase]:
        cached = self.cache.get(settings.cache_key_base_data)
        if cached is None:
            return None
        try:
            return DashboardBase.model_validate(cached)
        except ValidationError as e:
            logger.warning(
                f"Cached dashboard has unexpected shape: {e}",
                extra={"cache_key": settings.cache_key_base_data},
            )
            return None

    async def get_dashboard_data(
        self, identity: Optional[str]
    ) -> Union[DashboardPayload, ErrorPayload]:
        """Charts, client list and the caller's name/role."""
        base = self._cached_base()
        if base is None:
            try:
                base = await self.build_base_data()
            except READ_ERRORS as e:
                logger.error(f"Dashboard build failed: {e}")
                return ErrorPayload(error=str(e))
            self.cache.put(
                settings.cache_key_base_data, base, settings.dashboard_cache_ttl
            )

        return DashboardPayload(
            charts=base.charts,
            clients=base.clients,
            user_name=display_name(identity),
            user_role=await self.gate.resolve_role(identity),
        )

    async def search_campaign_by_type(
        self, query: Optional[str]
    ) -> Union[List[CampaignSearchResult], ErrorPayload]:
        """Campaigns whose type contains ``query`` (case-insensitive).

        Newest start date first, undated campaigns last, capped at
        ``search_result_cap`` entries.
        """
        if not query or not query.strip():
            return []
        needle = query.strip().upper()
        cache_key = f"{settings.cache_key_search_prefix}{needle}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            try:
                return [CampaignSearchResult.model_validate(r) for r in cached]
            except (TypeError, ValidationError) as e:
                logger.warning(f"Cached search has unexpected shape: {e}", extra={"cache_key": cache_key})

        try:
            table = await self._load_table()
        except READ_ERRORS as e:
            logger.error(f"Search failed: {e}")
            return ErrorPayload(error=str(e))

        matches = [
            r
            for r in table.rows()
            if r.campaign_type is not None and needle in r.campaign_type.upper()
        ]
        dated = sorted(
            (r for r in matches if r.start_date is not None),
            key=lambda r: r.start_date,  # type: ignore[arg-type, return-value]
            reverse=True,
        )
        undated = [r for r in matches if r.start_date is None]
        results = [_search_row(r) for r in dated + undated][: settings.search_result_cap]

        self.cache.put(cache_key, results, settings.search_cache_ttl)
        logger.info(f"Search '{needle}' matched {len(matches)} campaigns")
        return results

    # ── Access ──

    async def has_access(self, identity: Optional[str]) -> bool:
        return await self.gate.has_any_access(identity)

    # ── Write Path ──

    def invalidate_dashboard_cache(self) -> None:
        self.cache.invalidate(settings.cache_key_base_data)

    async def _entry_column_index(self) -> int:
        # Positional entry columns may lie past the used range of the sheet
        if not isinstance(self.entry_column, ByName):
            return positional_index("entry", self.entry_column)
        width = await self.source.last_column_index()
        header = (await self.source.read_range(1, 1, 1, width))[0] if width else []
        return resolve_column("entry", self.entry_column, header, width)

    async def _next_empty_row(self, column: int) -> int:
        """First empty cell below the header in ``column``, else after the last row."""
        height = max(await self.source.max_rows(), 1)
        cells = await self.source.read_range(1, column, height, 1)
        for index, (value,) in enumerate(cells[1:], start=2):
            if value is None or value == "":
                return index
        return await self.source.last_row_index() + 1

    async def submit_entry(self, identity: Optional[str], code: Optional[str]) -> SubmitResult:
        """Append ``code`` to the first empty cell of the entry column.

        Admins only. Raises PermissionDeniedError, InvalidInputError or
        SourceNotFoundError; nothing is written or invalidated on failure.
        """
        if not await self.gate.authorize(identity, settings.admin_role):
            raise PermissionDeniedError(
                "Permission Denied: Only admins can submit new entries."
            )
        if code is None or not str(code).strip():
            raise InvalidInputError("Invalid input: Code cannot be empty.")
        code = str(code).strip()

        if not await self.source.exists():
            raise SourceNotFoundError(self.source.sheet_name)

        column = await self._entry_column_index()

        async with self._append_lock():
            row = await self._next_empty_row(column)
            await self.source.write_cell(row, column, code)

        self.invalidate_dashboard_cache()
        logger.info(
            f"Entry submitted to row {row}",
            extra={"identity": identity, "sheet": self.source.sheet_name},
        )
        return SubmitResult(message=f'Code "{code}" submitted to row {row}.', row=row)

    # ── Maintenance ──

    async def refresh_snapshot(self, snapshot: SheetSource) -> int:
        """Copy the whole source sheet into ``snapshot`` and invalidate the cache."""
        if not await self.source.exists():
            raise SourceNotFoundError(self.source.sheet_name)
        values = await self.source.read_all()
        await snapshot.create()
        await snapshot.clear()
        if values:
            await snapshot.write_range(1, 1, values)
        self.invalidate_dashboard_cache()
        logger.info(
            f"Data refresh complete. Copied {len(values)} rows & cache invalidated.",
            extra={"sheet": snapshot.sheet_name},
        )
        return len(values)
