# colorfest_analytics/core/comparison.py
"""
Same period, previous editions.

A window chosen in the current edition's year is shifted back one year per
edition. Each edition is measured from daily snapshots when some exist in
the shifted window, otherwise from the imported historical deltas.
Presenze drive the percentages; tickets are reported alongside.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Dict, List, Optional

from colorfest_analytics.core.calendar import EditionCalendar, FestivalEdition
from colorfest_analytics.core.editions import classify_name, presenze_multiplier
from colorfest_analytics.core.formatting import format_period_it, round_half_up
from colorfest_analytics.core.models import ComparisonRow, DailySalesLine, SnapshotEntry

log = logging.getLogger(__name__)


def shift_years(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year - years)
    except ValueError:
        # 29 Feb -> 28 Feb
        return d.replace(year=d.year - years, day=28)


def _latest_per_event(rows: List[SnapshotEntry]) -> List[SnapshotEntry]:
    latest: Dict[str, SnapshotEntry] = {}
    for r in rows:
        key = r.event_name or r.event_id
        cur = latest.get(key)
        if cur is None or r.snapshot_date > cur.snapshot_date:
            latest[key] = r
    return list(latest.values())


def _from_snapshots(
    rows: List[SnapshotEntry], edition: FestivalEdition, calendar: EditionCalendar
) -> Optional[ComparisonRow]:
    presenze = tickets = 0
    events: List[DailySalesLine] = []
    for r in _latest_per_event(rows):
        ident = classify_name(r.event_name, datetime.combine(r.snapshot_date, time()), calendar, event_id=r.event_id)
        if ident.key != edition.key:
            continue
        tickets += r.tickets_sold
        presenze += r.tickets_sold * presenze_multiplier(r.event_name)
        events.append(DailySalesLine(event_name=r.event_name, sold=r.tickets_sold))
    if not events:
        return None
    events.sort(key=lambda l: l.sold, reverse=True)
    return ComparisonRow(
        edition_key=edition.key, label=edition.label, year=edition.year,
        period_start=date.min, period_end=date.min, period_label="",
        presenze=presenze, tickets=tickets, source="snapshots", events=events,
    )


def _from_historical(historical, edition: FestivalEdition, until: date) -> Optional[ComparisonRow]:
    rows = [r for r in historical.rows(edition.key) if r.sale_date <= until]
    if not rows:
        return None
    return ComparisonRow(
        edition_key=edition.key, label=edition.label, year=edition.year,
        period_start=date.min, period_end=date.min, period_label="",
        presenze=sum(r.presenze_delta for r in rows),
        tickets=sum(r.tickets_delta for r in rows),
        source="historical",
    )


def compare_period(
    snapshots,
    historical,
    calendar: EditionCalendar,
    start: date,
    end: date,
    reference_key: Optional[str] = None,
) -> List[ComparisonRow]:
    """
    One row per festival edition, most recent first. `snapshots` needs
    `entries_between(start, end)`, `historical` needs `rows(edition_key)`;
    either may be None.
    """
    if end < start:
        start, end = end, start
    editions = calendar.festival_editions()
    if not editions:
        return []
    reference = calendar.edition(reference_key) if reference_key else None
    reference = reference or editions[0]

    out: List[ComparisonRow] = []
    for ed in editions:
        diff = reference.year - ed.year
        eq_start, eq_end = shift_years(start, diff), shift_years(end, diff)

        row = None
        if snapshots is not None:
            row = _from_snapshots(snapshots.entries_between(eq_start, eq_end), ed, calendar)
        if row is None and historical is not None:
            row = _from_historical(historical, ed, eq_end)
        if row is None:
            row = ComparisonRow(
                edition_key=ed.key, label=ed.label, year=ed.year,
                period_start=eq_start, period_end=eq_end, period_label="",
            )
        row.period_start, row.period_end = eq_start, eq_end
        row.period_label = format_period_it(eq_start, eq_end)
        out.append(row)

    ref_row = next(r for r in out if r.edition_key == reference.key)
    for r in out:
        if r is ref_row or r.presenze == 0:
            continue
        r.pct_vs_reference = round_half_up((ref_row.presenze - r.presenze) / r.presenze * 100, 1)

    log.info("comparison: %s editions, reference %s", len(out), reference.key)
    return out
