"""Ad Ops Hub - Campaign & Dashboard Models."""

from datetime import date
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict

Cell = Union[int, float, str]
Table = List[List[Cell]]


class CampaignRecord(BaseModel):
    """One sanitized row of the campaign log.

    String fields are ``None`` when blank or "N/A"; numbers and dates are
    ``None`` when they fail to parse.
    """

    model_config = ConfigDict(frozen=True)

    campaign_id: Optional[Cell] = None
    client: Optional[str] = None
    platform: Optional[str] = None
    ad_format: Optional[str] = None
    budget: Optional[float] = None
    campaign_type: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    remarks: Optional[Any] = None
    guide_link: Optional[Any] = None

    @property
    def has_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class AggregationResult(BaseModel):
    """Chart tables computed in one pass over the campaign log.

    Each table is a header row followed by data rows.
    """

    model_config = ConfigDict(frozen=True)

    platform_client_counts: Table
    frequency_by_client: Table
    current_month_budgets: Table
    campaign_durations: Table
    campaign_status_counts: Table
    monthly_budget_by_client: Table


class DashboardBase(BaseModel):
    """Identity-independent part of the dashboard; this is what gets cached."""

    model_config = ConfigDict(frozen=True)

    charts: AggregationResult
    clients: List[str] = []


class DashboardPayload(BaseModel):
    """Full response of the dashboard view."""

    charts: AggregationResult
    clients: List[str] = []
    user_name: str = "User"
    user_role: Optional[str] = None


class CampaignSearchResult(BaseModel):
    """A campaign record shaped for the search table (dates as YYYY-MM-DD)."""

    model_config = ConfigDict(frozen=True)

    id: Optional[Cell] = None
    campaign_id: Optional[Cell] = None
    client: Optional[str] = None
    platform: Optional[str] = None
    ad_format: Optional[str] = None
    budget: Optional[float] = None
    campaign_type: Optional[str] = None
    status: Optional[str] = None
    start_date: str = ""
    end_date: str = ""
    remarks: Optional[Any] = None
    guide_link: Optional[Any] = None


class SubmitResult(BaseModel):
    """Outcome of an entry submission."""

    success: bool = True
    message: str
    row: int


class ErrorPayload(BaseModel):
    """Read-path failure surfaced to the UI."""

    error: str
