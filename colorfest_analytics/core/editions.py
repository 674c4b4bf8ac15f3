# colorfest_analytics/core/editions.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Dict, List, Optional

from colorfest_analytics.core.calendar import EditionCalendar, FestivalEdition
from colorfest_analytics.core.days import CF_NUMBER_RE, DEFAULT_TZ, named_days, to_local
from colorfest_analytics.core.models import Edition, EditionIdentity, RawEvent, active_events

COLOR_FEST_RE = re.compile(r"color\s*fest", flags=re.IGNORECASE)
WINTER_RE = re.compile(r"winter(\s*session)?", flags=re.IGNORECASE)
PASQUETTA_RE = re.compile(r"pasquetta", flags=re.IGNORECASE)
ANCILLARY_RE = re.compile(r"winter|pasquetta|factory", flags=re.IGNORECASE)

_SUBSCRIPTION_RE = re.compile(r"abbonamento", flags=re.IGNORECASE)
_TWO_DAYS_RE = re.compile(r"2\s*days?", flags=re.IGNORECASE)
_FULL_RE = re.compile(r"abbonamento|full", flags=re.IGNORECASE)
_SINGLE_DAY_RE = re.compile(r"1\s*day|one\s*day", flags=re.IGNORECASE)

SUMMER_MONTHS = (7, 8, 9)


def _from_override(key: str, when: datetime, calendar: EditionCalendar) -> EditionIdentity:
    ed = calendar.edition(key)
    if ed is not None:
        return EditionIdentity(key=ed.key, label=ed.label, year=ed.year)
    return EditionIdentity(key=key, label=key, year=when.year)


def _festival_on_day(name: str, when: datetime, calendar: EditionCalendar) -> Optional[FestivalEdition]:
    """Edition selling the named days, or running on the start date."""
    local = to_local(when, DEFAULT_TZ)
    for month, day in named_days(name):
        try:
            ed = calendar.edition_on(date(local.year, month, day))
        except ValueError:
            continue
        if ed is not None:
            return ed
    return calendar.edition_on(local.date())


def classify_name(
    name: str,
    when: datetime,
    calendar: EditionCalendar,
    event_id: Optional[str] = None,
) -> EditionIdentity:
    """
    Edition of an event given its name and start. The id override table
    is consulted first, then the name rules, then the official festival
    days; unknown names land in 'Altri Eventi' of their year.
    """
    override = calendar.override_for(event_id)
    if override:
        return _from_override(override, when, calendar)

    name = name or ""
    year = when.year

    m = CF_NUMBER_RE.search(name)
    if m:
        n = int(m.group(1))
        return EditionIdentity(key=f"cf-{n}", label=f"Color Fest {n}", year=year)
    if WINTER_RE.search(name):
        return EditionIdentity(key=f"winter-{year}", label=f"Winter Session {year}", year=year)
    if PASQUETTA_RE.search(name):
        return EditionIdentity(key=f"pasquetta-{year}", label=f"Pasquetta {year}", year=year)
    festival = _festival_on_day(name, when, calendar)
    if festival is not None:
        return EditionIdentity(key=festival.key, label=festival.label, year=festival.year)
    if COLOR_FEST_RE.search(name) and when.month in SUMMER_MONTHS:
        return EditionIdentity(key=f"cf-summer-{year}", label=f"Color Fest {year}", year=year)
    return EditionIdentity(key=f"other-{year}", label=f"Altri Eventi {year}", year=year)


def classify(event: RawEvent, calendar: EditionCalendar) -> EditionIdentity:
    return classify_name(event.name, event.start_datetime, calendar, event_id=event.id)


def group_editions(events: List[RawEvent], calendar: EditionCalendar) -> List[Edition]:
    by_key: Dict[str, Edition] = {}
    for ev in active_events(events):
        ident = classify(ev, calendar)
        ed = by_key.get(ident.key)
        if ed is None:
            ed = by_key[ident.key] = Edition(key=ident.key, label=ident.label, year=ident.year)
        ed.events.append(ev)
    return sorted(by_key.values(), key=lambda e: (-e.year, e.label))


def current_edition(editions: List[Edition], preferred_key: Optional[str] = None) -> Optional[Edition]:
    if not editions:
        return None
    if preferred_key:
        for ed in editions:
            if ed.key == preferred_key:
                return ed
    numbered = [ed for ed in editions if re.fullmatch(r"cf-\d+", ed.key)]
    if numbered:
        return max(numbered, key=lambda e: (e.year, int(e.key.split("-")[1])))
    return editions[0]


def presenze_multiplier(event_name: str) -> int:
    """How many festival days one ticket of this kind is worth."""
    name = event_name or ""
    if WINTER_RE.search(name):
        return 2 if _SUBSCRIPTION_RE.search(name) else 1
    if PASQUETTA_RE.search(name):
        return 1
    if _TWO_DAYS_RE.search(name):
        return 2
    if _FULL_RE.search(name) and not _SINGLE_DAY_RE.search(name):
        return 3
    return 1
