"""Ad Ops Hub - Google Sheets API Client.

Handles authentication, retry logic and rate limiting for the Sheets v4
REST API.
"""

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from adops.config import settings
from adops.core.logging import get_logger

logger = get_logger("sheets.client")

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds


class SheetsAPIError(Exception):
    """Raised when the Sheets API returns an error."""

    def __init__(self, message: str, status_code: int = 0, status: str = ""):
        self.status_code = status_code
        self.status = status
        super().__init__(message)


def _backoff(attempt: int) -> int:
    return RETRY_BASE_DELAY * 2 ** (attempt - 1)


def _api_error(response: httpx.Response) -> SheetsAPIError:
    """Error built from Google's JSON error body when the response carries one."""
    detail: Dict[str, Any] = {}
    if response.headers.get("content-type", "").startswith("application/json"):
        detail = response.json().get("error", {})
    return SheetsAPIError(
        detail.get("message", f"Sheets API returned HTTP {response.status_code}"),
        response.status_code,
        detail.get("status", ""),
    )


def a1_range(sheet_name: str, cells: str = "") -> str:
    """Quote a sheet name into A1 notation: 'My Sheet'!A1:B2."""
    quoted = "'" + sheet_name.replace("'", "''") + "'"
    return f"{quoted}!{cells}" if cells else quoted


class GoogleSheetsClient:
    """Async HTTP client for one spreadsheet."""

    def __init__(
        self,
        spreadsheet_id: str | None = None,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.spreadsheet_id = spreadsheet_id or settings.google_spreadsheet_id
        self.access_token = access_token or settings.google_access_token
        self.base_url = f"{settings.google_sheets_base_url}/spreadsheets/{self.spreadsheet_id}"
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=30.0,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Requests ──

    async def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Send one API call; 429s, 5xx and connection errors are retried with backoff."""
        client = await self._get_client()
        url = f"{self.base_url}{path}"

        for attempt in range(1, MAX_RETRIES + 1):
            wait = _backoff(attempt)
            try:
                resp = await client.request(method, url, params=params, json=json)
            except httpx.RequestError as e:
                if attempt == MAX_RETRIES:
                    raise SheetsAPIError(
                        f"Connection failed after {MAX_RETRIES} retries: {e}"
                    ) from e
                logger.warning(f"Request error: {e}. Retrying in {wait}s")
                await asyncio.sleep(wait)
                continue

            retryable = resp.status_code == 429 or (
                resp.status_code >= 500 and attempt < MAX_RETRIES
            )
            if retryable:
                logger.warning(
                    f"Sheets API returned {resp.status_code}. "
                    f"Retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})",
                    extra={"status_code": resp.status_code},
                )
                await asyncio.sleep(wait)
                continue
            if resp.is_error:
                raise _api_error(resp)
            return resp.json() if resp.content else {}

        raise SheetsAPIError("Max retries exhausted")

    # ── Spreadsheet Metadata ──

    async def get_sheet_properties(self) -> Dict[str, Dict[str, Any]]:
        """Map sheet title -> properties (sheetId, gridProperties)."""
        result = await self._request(
            "GET", "", params={"fields": "sheets.properties"}
        )
        return {
            sheet["properties"]["title"]: sheet["properties"]
            for sheet in result.get("sheets", [])
        }

    async def add_sheet(self, title: str) -> None:
        await self._request(
            "POST",
            ":batchUpdate",
            json={"requests": [{"addSheet": {"properties": {"title": title}}}]},
        )
        logger.info(f"Added sheet {title}", extra={"sheet": title})

    # ── Values ──

    async def get_values(self, range_a1: str) -> list:
        """Read raw values; dates come back as serial numbers."""
        result = await self._request(
            "GET",
            f"/values/{quote(range_a1, safe='')}",
            params={
                "majorDimension": "ROWS",
                "valueRenderOption": "UNFORMATTED_VALUE",
                "dateTimeRenderOption": "SERIAL_NUMBER",
            },
        )
        return result.get("values", [])

    async def update_values(self, range_a1: str, values: list) -> None:
        await self._request(
            "PUT",
            f"/values/{quote(range_a1, safe='')}",
            params={"valueInputOption": "USER_ENTERED"},
            json={"range": range_a1, "majorDimension": "ROWS", "values": values},
        )

    async def clear_values(self, range_a1: str) -> None:
        await self._request("POST", f"/values/{quote(range_a1, safe='')}:clear")
