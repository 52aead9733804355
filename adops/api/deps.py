"""Ad Ops Hub - Request Dependencies."""

from typing import AsyncIterator, Optional

from fastapi import Request

from adops.config import settings
from adops.connectors.sheets.base import SheetSource
from adops.connectors.sheets.client import GoogleSheetsClient
from adops.connectors.sheets.database_store import DatabaseSheetSource
from adops.connectors.sheets.google_source import GoogleSheetSource
from adops.core.access import AccessGate
from adops.core.cache import CacheBackend, DashboardCache, DatabaseCacheBackend, MemoryCacheBackend
from adops.analyzer.dashboard import AppendLocks, DashboardService
from adops.database import engine
from adops.core.logging import get_logger

logger = get_logger("api.deps")


def build_cache_backend() -> CacheBackend:
    """Create the process-wide cache backend selected in settings."""
    if settings.cache_backend == "database":
        return DatabaseCacheBackend(engine)
    return MemoryCacheBackend()


class SheetFactory:
    """Creates SheetSources for the configured backend, sharing one API client."""

    def __init__(self):
        self.client: Optional[GoogleSheetsClient] = None
        if settings.sheet_backend == "google":
            if not settings.google_configured:
                logger.warning(
                    "Google sheet backend selected without spreadsheet id or access token; "
                    "Sheets API calls will fail"
                )
            self.client = GoogleSheetsClient()

    def sheet(self, name: str) -> SheetSource:
        if self.client is not None:
            return GoogleSheetSource(name, self.client)
        return DatabaseSheetSource(name, engine)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


def build_service(
    factory: SheetFactory,
    backend: CacheBackend,
    append_locks: Optional[AppendLocks] = None,
) -> DashboardService:
    return DashboardService(
        source=factory.sheet(settings.source_sheet_name),
        gate=AccessGate(factory.sheet(settings.permissions_sheet_name)),
        cache=DashboardCache(backend),
        append_locks=append_locks,
    )


async def get_dashboard_service(request: Request) -> AsyncIterator[DashboardService]:
    """Dependency - yields a DashboardService bound to the app's cache and append locks."""
    factory = SheetFactory()
    try:
        yield build_service(
            factory, request.app.state.cache_backend, request.app.state.append_locks
        )
    finally:
        await factory.close()


def get_identity(request: Request) -> Optional[str]:
    """Caller identity (email) forwarded by the authenticating proxy."""
    return request.headers.get(settings.identity_header)
