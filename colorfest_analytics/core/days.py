# colorfest_analytics/core/days.py
"""
Which calendar days a DICE event sells access to.

Resolution order, first hit wins:
  1. day numbers written in the event name ("2 Days (12-13 Agosto)")
  2. same, on the ticket type names, for full-pass / early-bird events
  3. with an official calendar, day numbers only select official days;
     a pass, or the edition's own "Color Fest <N>" event, without day
     numbers covers every official day
  4. start/end datetimes, an end before noon counting as the previous night
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from colorfest_analytics.core.models import RawEvent

DEFAULT_TZ = "Europe/Rome"

_MONTHS = {
    "gennaio": 1, "febbraio": 2, "marzo": 3, "aprile": 4, "maggio": 5, "giugno": 6,
    "luglio": 7, "agosto": 8, "settembre": 9, "ottobre": 10, "novembre": 11, "dicembre": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
}
_MONTH_RE = re.compile(
    r"\b(" + "|".join(sorted(_MONTHS, key=len, reverse=True)) + r")\b",
    flags=re.IGNORECASE,
)
# "11", "12-13", "11 - 12 - 13", "11, 12 e 13" right before the month token
_DAY_RUN_RE = re.compile(
    r"(?<!\d)(\d{1,2}(?!\d)(?:\s*(?:[-–,/&]|\be\b|\band\b)?\s*\d{1,2}(?!\d))*)\s*$",
    flags=re.IGNORECASE,
)
_PASS_RE = re.compile(r"\b(full|abbonamento|early\s*bird|pass|subscription)\b", flags=re.IGNORECASE)
CF_NUMBER_RE = re.compile(r"color\s*fest\s*(\d+)", flags=re.IGNORECASE)

_NOON = time(12, 0)


def named_days(text: Optional[str]) -> List[Tuple[int, int]]:
    """(month, day) pairs written in `text`, in order of appearance."""
    if not text:
        return []
    out: List[Tuple[int, int]] = []
    for m in _MONTH_RE.finditer(text):
        run = _DAY_RUN_RE.search(text[:m.start()])
        if not run:
            continue
        month = _MONTHS[m.group(1).lower()]
        out.extend((month, int(d)) for d in re.findall(r"\d{1,2}", run.group(1)))
    return out


def is_pass(name: Optional[str]) -> bool:
    return bool(name and _PASS_RE.search(name))


def _event_named_days(event: RawEvent) -> List[Tuple[int, int]]:
    found = named_days(event.name)
    if found or not is_pass(event.name):
        return found
    for tt in event.ticket_types:
        found = named_days(tt.name)
        if found:
            return found
    return []


def to_local(value: datetime, tz: str) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(tz))


def _dates(year: int, pairs: Iterable[Tuple[int, int]]) -> List[date]:
    out = set()
    for month, day in pairs:
        try:
            out.add(date(year, month, day))
        except ValueError:
            continue  # "31 Giugno"
    return sorted(out)


def datetime_range_days(start: datetime, end: Optional[datetime], tz: str = DEFAULT_TZ) -> List[date]:
    s = to_local(start, tz)
    e = to_local(end, tz) if end else s
    first, last = s.date(), e.date()
    if last > first and e.time() < _NOON:
        last -= timedelta(days=1)
    if last < first:
        last = first
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def is_edition_headline(name: Optional[str], edition_key: Optional[str]) -> bool:
    """True for "Color Fest 14" in cf-14: the festival itself, not a day ticket."""
    m = CF_NUMBER_RE.search(name or "")
    return bool(m and edition_key and edition_key == f"cf-{int(m.group(1))}")


def resolve_days(
    event: RawEvent,
    official_days: Optional[List[date]] = None,
    tz: str = DEFAULT_TZ,
    edition_key: Optional[str] = None,
) -> List[date]:
    pairs = _event_named_days(event)

    if official_days:
        official = sorted(set(official_days))
        if pairs:
            wanted = {d for _, d in pairs}
            hit = [d for d in official if d.day in wanted]
            if hit:
                return hit
        elif is_pass(event.name) or is_edition_headline(event.name, edition_key):
            return official
    elif pairs:
        year = to_local(event.start_datetime, tz).year
        found = _dates(year, pairs)
        if found:
            return found

    return datetime_range_days(event.start_datetime, event.end_datetime, tz)
