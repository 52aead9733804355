"""Ad Ops Hub - Chart Aggregator.

Folds the campaign log into the dashboard's chart tables in one pass:
status counts, client x platform budget, current-month budget by ad format
and by client, and total campaign duration per campaign type.
"""

import calendar
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from adops.models.campaign_models import AggregationResult, CampaignRecord, Table
from adops.core.logging import get_logger

logger = get_logger("analyzer.aggregator")

TOP_CAMPAIGN_TYPES = 5

HEADERS = {
    "frequency_by_client": ["Client - Platform", "Total Meta Budget"],
    "current_month_budgets": ["Ad Format", "Budget"],
    "campaign_durations": ["Campaign Type", "Total Duration (Days)"],
    "campaign_status_counts": ["Status", "Count"],
    "monthly_budget_by_client": ["Client", "Meta Budget"],
}


def month_bounds(today: date) -> Tuple[date, date]:
    """First and last day of the calendar month containing ``today``."""
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def _overlaps(record: CampaignRecord, start: date, end: date) -> bool:
    return (
        record.has_dates
        and record.start_date <= end  # type: ignore[operator]
        and record.end_date >= start  # type: ignore[operator]
    )


def _pairs(header: List[str], values: Dict[str, float], drop_zero: bool = False) -> Table:
    rows: Table = [list(header)]
    for key, value in values.items():
        if drop_zero and value == 0:
            continue
        rows.append([key, value])
    return rows


def _platform_client_table(
    budgets: Dict[str, Dict[str, float]], platforms: Iterable[str]
) -> Table:
    """Dense client x platform table; clients with no spend are dropped."""
    sorted_platforms = sorted(platforms)
    table: Table = [["Client", *sorted_platforms]]
    for client in sorted(budgets):
        row_values = [budgets[client].get(p, 0) for p in sorted_platforms]
        if any(v != 0 for v in row_values):
            table.append([client, *row_values])
    return table


def aggregate(
    records: Iterable[CampaignRecord], today: Optional[date] = None
) -> AggregationResult:
    """Compute every chart table for ``records``.

    Date-windowed buckets (current month, durations) skip records without
    both dates; the other buckets only need their own fields. Campaign-type
    durations also require a budget. Ties in the top campaign types keep
    first-seen order.
    """
    today = today or date.today()
    month_start, month_end = month_bounds(today)

    status_counts: Dict[str, int] = defaultdict(int)
    platform_client: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    platforms: set[str] = set()
    client_platform_sum: Dict[str, float] = defaultdict(float)
    ad_format_budget: Dict[str, float] = defaultdict(float)
    client_budget: Dict[str, float] = defaultdict(float)
    durations: Dict[str, int] = defaultdict(int)

    count = 0
    for r in records:
        count += 1
        has_budget = r.budget is not None

        if r.status is not None:
            status_counts[r.status] += 1

        if r.client is not None and r.platform is not None and has_budget:
            platform_client[r.client][r.platform] += r.budget  # type: ignore[operator]
            platforms.add(r.platform)
            client_platform_sum[f"{r.client} - {r.platform}"] += r.budget  # type: ignore[operator]

        in_month = _overlaps(r, month_start, month_end)
        if in_month and r.ad_format is not None and has_budget:
            ad_format_budget[r.ad_format] += r.budget  # type: ignore[operator]
        if in_month and r.client is not None and has_budget:
            client_budget[r.client] += r.budget  # type: ignore[operator]

        if r.has_dates and r.campaign_type is not None and has_budget:
            durations[r.campaign_type] += (r.end_date - r.start_date).days  # type: ignore[operator]

    top_durations = sorted(durations.items(), key=lambda kv: kv[1], reverse=True)
    top_durations = top_durations[:TOP_CAMPAIGN_TYPES]

    result = AggregationResult(
        platform_client_counts=_platform_client_table(platform_client, platforms),
        frequency_by_client=_pairs(HEADERS["frequency_by_client"], client_platform_sum),
        current_month_budgets=_pairs(
            HEADERS["current_month_budgets"], ad_format_budget, drop_zero=True
        ),
        campaign_durations=[list(HEADERS["campaign_durations"])]
        + [[k, v] for k, v in top_durations],
        campaign_status_counts=_pairs(HEADERS["campaign_status_counts"], status_counts),
        monthly_budget_by_client=_pairs(
            HEADERS["monthly_budget_by_client"], client_budget, drop_zero=True
        ),
    )
    logger.info(
        f"Aggregated {count} records: {len(platforms)} platforms, "
        f"{len(status_counts)} statuses, {len(durations)} campaign types"
    )
    return result
