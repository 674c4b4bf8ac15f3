# colorfest_analytics/core/snapshots.py
"""
"Sold today" figures computed against the first snapshot of the day.

The store keeps at most one row per (event_id, snapshot_date): the first
capture of a day wins and later captures are ignored, so the baseline is
the sales count at the first poll of the day. Stores only need
`insert_if_absent(entries) -> int` and `entries_for(day) -> list`.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from colorfest_analytics.core.aggregate import edition_days, event_coverage
from colorfest_analytics.core.calendar import EditionCalendar
from colorfest_analytics.core.days import DEFAULT_TZ
from colorfest_analytics.core.formatting import format_day_label, round_int
from colorfest_analytics.core.models import (
    DayOverDay,
    DaySales,
    Edition,
    EventDelta,
    RawEvent,
    SalesDelta,
    SnapshotEntry,
    active_events,
)

log = logging.getLogger(__name__)


def capture_baseline(store, events: List[RawEvent], today: date) -> int:
    entries = [
        SnapshotEntry(
            event_id=ev.id,
            event_name=ev.name,
            tickets_sold=ev.tickets_sold,
            snapshot_date=today,
        )
        for ev in active_events(events)
    ]
    inserted = store.insert_if_absent(entries)
    log.info("snapshots: %s/%s baseline rows written for %s", inserted, len(entries), today.isoformat())
    return inserted


def get_baseline(store, day: date) -> List[SnapshotEntry]:
    return store.entries_for(day)


def _by_event(baseline: Optional[List[SnapshotEntry]]) -> Dict[str, int]:
    return {s.event_id: s.tickets_sold for s in (baseline or [])}


def _delta(ev: RawEvent, prev: Dict[str, int]) -> EventDelta:
    base = prev.get(ev.id, 0)
    return EventDelta(
        event_id=ev.id,
        event_name=ev.name,
        current=ev.tickets_sold,
        baseline=base,
        delta=max(0, ev.tickets_sold - base),
    )


def compute_delta(current: List[RawEvent], baseline: Optional[List[SnapshotEntry]]) -> SalesDelta:
    prev = _by_event(baseline)
    deltas = [_delta(ev, prev) for ev in current]
    return SalesDelta(events=deltas, total=sum(d.delta for d in deltas))


def pct_change(today: int, yesterday: int) -> Optional[int]:
    if yesterday == 0:
        return None
    return round_int((today - yesterday) / yesterday * 100)


def _sold_yesterday(
    ev: RawEvent,
    today_b: Dict[str, int],
    yesterday_b: Optional[Dict[str, int]],
) -> int:
    if yesterday_b is None or ev.id not in today_b:
        return 0
    return max(0, today_b[ev.id] - yesterday_b.get(ev.id, 0))


def day_over_day(
    current: List[RawEvent],
    today_baseline: Optional[List[SnapshotEntry]],
    yesterday_baseline: Optional[List[SnapshotEntry]],
) -> DayOverDay:
    today_b = _by_event(today_baseline)
    yest_b = _by_event(yesterday_baseline) if yesterday_baseline is not None else None
    sold_today = compute_delta(current, today_baseline).total
    sold_yesterday = sum(_sold_yesterday(ev, today_b, yest_b) for ev in current)
    return DayOverDay(
        sold_today=sold_today,
        sold_yesterday=sold_yesterday,
        pct_change=pct_change(sold_today, sold_yesterday),
    )


def today_sales_per_day(
    edition: Edition,
    calendar: EditionCalendar,
    today_baseline: Optional[List[SnapshotEntry]],
    yesterday_baseline: Optional[List[SnapshotEntry]] = None,
    tz: str = DEFAULT_TZ,
) -> List[DaySales]:
    coverage = event_coverage(edition, calendar, tz)
    today_b = _by_event(today_baseline)
    yest_b = _by_event(yesterday_baseline) if yesterday_baseline is not None else None

    out: List[DaySales] = []
    for d in edition_days(edition, calendar, tz):
        covering = [ev for ev in edition.events if d in coverage[ev.id]]
        sold_today = sum(_delta(ev, today_b).delta for ev in covering)
        sold_yesterday = sum(_sold_yesterday(ev, today_b, yest_b) for ev in covering)
        out.append(DaySales(
            day=format_day_label(d),
            date=d,
            sold_today=sold_today,
            sold_yesterday=sold_yesterday,
            pct_change=pct_change(sold_today, sold_yesterday),
        ))
    return out


def today_sales_breakdown(current: List[RawEvent], today_baseline: Optional[List[SnapshotEntry]]) -> List[EventDelta]:
    rows = [d for d in compute_delta(current, today_baseline).events if d.delta > 0]
    rows.sort(key=lambda d: d.delta, reverse=True)
    return rows


def today_presenze_breakdown(
    edition: Edition,
    calendar: EditionCalendar,
    today_baseline: Optional[List[SnapshotEntry]],
    tz: str = DEFAULT_TZ,
) -> List[EventDelta]:
    """Same as today_sales_breakdown, weighted by festival days covered."""
    coverage = event_coverage(edition, calendar, tz)
    days = set(edition_days(edition, calendar, tz))

    rows: List[EventDelta] = []
    for d in today_sales_breakdown(edition.events, today_baseline):
        n = len(days.intersection(coverage[d.event_id]))
        if n == 0:
            continue
        rows.append(EventDelta(
            event_id=d.event_id,
            event_name=d.event_name,
            current=d.current * n,
            baseline=d.baseline * n,
            delta=d.delta * n,
        ))
    rows.sort(key=lambda d: d.delta, reverse=True)
    return rows
