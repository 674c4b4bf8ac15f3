# colorfest_analytics/core/models.py

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

CANCELLED = "CANCELLED"


class TicketType(BaseModel):
    id: str = ""
    name: str = ""
    price: Optional[int] = None         # centimes, as returned by DICE
    allocated_qty: Optional[int] = None

    model_config = ConfigDict(extra="allow")


class RawEvent(BaseModel):
    """
    One sellable DICE event as fetched.
    `tickets_sold` only ever grows over the life of the event.
    """
    id: str
    name: str
    state: Optional[str] = None
    start_datetime: dt.datetime
    end_datetime: Optional[dt.datetime] = None
    ticket_types: List[TicketType] = Field(default_factory=list)
    tickets_sold: int = 0

    model_config = ConfigDict(extra="allow")

    @property
    def is_active(self) -> bool:
        return (self.state or "").upper() != CANCELLED


def active_events(events: List[RawEvent]) -> List[RawEvent]:
    return [e for e in events if e.is_active]


class EditionIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    year: int


class Edition(BaseModel):
    key: str
    label: str
    year: int
    events: List[RawEvent] = Field(default_factory=list)


class DashboardTargets(BaseModel):
    """Goal and capacity supplied by the caller at aggregation time."""
    sales_goal: Optional[int] = None
    capacity_per_day: Optional[int] = None


class DayDistribution(BaseModel):
    day: str                            # "11 Ago"
    date: dt.date
    count: int = 0
    capacity_pct: Optional[float] = None


class TicketRow(BaseModel):
    event_name: str
    sold: int
    days: List[str] = Field(default_factory=list)


class DailySalesLine(BaseModel):
    event_name: str
    sold: int


class DailySalesDetail(BaseModel):
    day: str
    date: dt.date
    total: int
    events: List[DailySalesLine] = Field(default_factory=list)


class SnapshotEntry(BaseModel):
    event_id: str
    event_name: str
    ticket_type: Optional[str] = None
    tickets_sold: int
    snapshot_date: dt.date


class HistoricalDailyPresenze(BaseModel):
    edition_key: str
    sale_date: dt.date
    presenze_delta: int = 0
    tickets_delta: int = 0


class EventDelta(BaseModel):
    event_id: str
    event_name: str
    current: int
    baseline: int
    delta: int


class SalesDelta(BaseModel):
    events: List[EventDelta] = Field(default_factory=list)
    total: int = 0


class DayOverDay(BaseModel):
    sold_today: int
    sold_yesterday: int
    pct_change: Optional[int] = None


class DaySales(BaseModel):
    day: str
    date: dt.date
    sold_today: int = 0
    sold_yesterday: int = 0
    pct_change: Optional[int] = None


class GoalProgress(BaseModel):
    goal: int
    presenze: int
    pct: float
    remaining: int


class EditionReport(BaseModel):
    key: str
    label: str
    year: int
    event_count: int
    total_tickets: int
    total_presenze: int
    distribution: List[DayDistribution] = Field(default_factory=list)
    ticket_rows: List[TicketRow] = Field(default_factory=list)
    daily_breakdown: List[DailySalesDetail] = Field(default_factory=list)
    goal: Optional[GoalProgress] = None
    # only set when a baseline for today exists
    today_total: Optional[DayOverDay] = None
    today_per_day: List[DaySales] = Field(default_factory=list)
    today_breakdown: List[EventDelta] = Field(default_factory=list)
    today_presenze_breakdown: List[EventDelta] = Field(default_factory=list)


class ImportResult(BaseModel):
    processed: int = 0
    skipped: int = 0
    unique_days: int = 0
    editions: List[str] = Field(default_factory=list)


class ComparisonRow(BaseModel):
    edition_key: str
    label: str
    year: int
    period_start: dt.date
    period_end: dt.date
    period_label: str
    presenze: int = 0
    tickets: int = 0
    source: str = "none"                # "snapshots" | "historical" | "none"
    pct_vs_reference: Optional[float] = None
    events: List[DailySalesLine] = Field(default_factory=list)


class DashboardState(BaseModel):
    events: List[RawEvent] = Field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    fetched_at: Optional[dt.datetime] = None
    today_baseline: Optional[List[SnapshotEntry]] = None
    yesterday_baseline: Optional[List[SnapshotEntry]] = None
