# colorfest_analytics/core/aggregate.py
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from colorfest_analytics.core.calendar import EditionCalendar
from colorfest_analytics.core.days import DEFAULT_TZ, resolve_days
from colorfest_analytics.core.formatting import format_day_label, round_half_up
from colorfest_analytics.core.models import (
    DailySalesDetail,
    DailySalesLine,
    DashboardTargets,
    DayDistribution,
    Edition,
    EditionReport,
    GoalProgress,
    SnapshotEntry,
    TicketRow,
)


def event_coverage(edition: Edition, calendar: EditionCalendar, tz: str = DEFAULT_TZ) -> Dict[str, List[date]]:
    """event id -> covered days, resolved once per edition."""
    official = calendar.official_days(edition.key)
    return {ev.id: resolve_days(ev, official, tz, edition.key) for ev in edition.events}


def edition_days(edition: Edition, calendar: EditionCalendar, tz: str = DEFAULT_TZ) -> List[date]:
    official = calendar.official_days(edition.key)
    if official:
        return official
    days = set()
    for covered in event_coverage(edition, calendar, tz).values():
        days.update(covered)
    return sorted(days)


def daily_attendance(
    edition: Edition,
    calendar: EditionCalendar,
    targets: Optional[DashboardTargets] = None,
    tz: str = DEFAULT_TZ,
) -> List[DayDistribution]:
    coverage = event_coverage(edition, calendar, tz)
    capacity = targets.capacity_per_day if targets else None

    out: List[DayDistribution] = []
    for d in edition_days(edition, calendar, tz):
        count = sum(ev.tickets_sold for ev in edition.events if d in coverage[ev.id])
        pct = round_half_up(count / capacity * 100, 1) if capacity else None
        out.append(DayDistribution(day=format_day_label(d), date=d, count=count, capacity_pct=pct))
    return out


def ticket_rows(edition: Edition, calendar: EditionCalendar, tz: str = DEFAULT_TZ) -> List[TicketRow]:
    coverage = event_coverage(edition, calendar, tz)
    rows = [
        TicketRow(
            event_name=ev.name,
            sold=ev.tickets_sold,
            days=[format_day_label(d) for d in coverage[ev.id]],
        )
        for ev in edition.events
    ]
    rows.sort(key=lambda r: r.sold, reverse=True)
    return rows


def total_tickets(edition: Edition) -> int:
    return sum(ev.tickets_sold for ev in edition.events)


def total_presenze(distribution: List[DayDistribution]) -> int:
    return sum(d.count for d in distribution)


def daily_sales_breakdown(
    edition: Edition, calendar: EditionCalendar, tz: str = DEFAULT_TZ
) -> List[DailySalesDetail]:
    """For each festival day, which events bring people in and how many."""
    coverage = event_coverage(edition, calendar, tz)
    out: List[DailySalesDetail] = []
    for d in edition_days(edition, calendar, tz):
        lines = [
            DailySalesLine(event_name=ev.name, sold=ev.tickets_sold)
            for ev in edition.events
            if d in coverage[ev.id] and ev.tickets_sold > 0
        ]
        lines.sort(key=lambda l: l.sold, reverse=True)
        out.append(DailySalesDetail(
            day=format_day_label(d), date=d, total=sum(l.sold for l in lines), events=lines,
        ))
    return out


def goal_progress(presenze: int, targets: Optional[DashboardTargets]) -> Optional[GoalProgress]:
    if not targets or not targets.sales_goal or targets.sales_goal <= 0:
        return None
    goal = targets.sales_goal
    pct = min(presenze / goal * 100, 100.0)
    return GoalProgress(
        goal=goal,
        presenze=presenze,
        pct=round_half_up(pct, 1),
        remaining=max(0, goal - presenze),
    )


def build_report(
    edition: Edition,
    calendar: EditionCalendar,
    targets: Optional[DashboardTargets] = None,
    today_baseline: Optional[List[SnapshotEntry]] = None,
    yesterday_baseline: Optional[List[SnapshotEntry]] = None,
    tz: str = DEFAULT_TZ,
) -> EditionReport:
    # local import: snapshots builds on this module
    from colorfest_analytics.core import snapshots

    distribution = daily_attendance(edition, calendar, targets, tz)
    presenze = total_presenze(distribution)

    report = EditionReport(
        key=edition.key,
        label=edition.label,
        year=edition.year,
        event_count=len(edition.events),
        total_tickets=total_tickets(edition),
        total_presenze=presenze,
        distribution=distribution,
        ticket_rows=ticket_rows(edition, calendar, tz),
        daily_breakdown=daily_sales_breakdown(edition, calendar, tz),
        goal=goal_progress(presenze, targets),
    )

    if today_baseline is not None:
        report.today_total = snapshots.day_over_day(edition.events, today_baseline, yesterday_baseline)
        report.today_per_day = snapshots.today_sales_per_day(
            edition, calendar, today_baseline, yesterday_baseline, tz
        )
        report.today_breakdown = snapshots.today_sales_breakdown(edition.events, today_baseline)
        report.today_presenze_breakdown = snapshots.today_presenze_breakdown(
            edition, calendar, today_baseline, tz
        )
    return report
