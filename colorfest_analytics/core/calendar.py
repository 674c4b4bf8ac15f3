# colorfest_analytics/core/calendar.py
"""
Static edition data: official festival days, event-id overrides and the
constants used to map historical sales onto editions. Lives in
data/editions.json so a new edition is a data change, not a code change.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

log = logging.getLogger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parent.parent / "data" / "editions.json"


class CalendarError(RuntimeError):
    pass


class FestivalEdition(BaseModel):
    key: str
    label: str
    year: int
    official_days: List[date] = Field(default_factory=list)


class HistoricalRules(BaseModel):
    edition_number_offset: int = 2012
    fiscal_year_start_month: int = 9


class EditionCalendar(BaseModel):
    version: int = 1
    editions: List[FestivalEdition] = Field(default_factory=list)
    event_overrides: Dict[str, str] = Field(default_factory=dict)
    historical: HistoricalRules = Field(default_factory=HistoricalRules)

    def edition(self, key: str) -> Optional[FestivalEdition]:
        for ed in self.editions:
            if ed.key == key:
                return ed
        return None

    def official_days(self, key: str) -> Optional[List[date]]:
        ed = self.edition(key)
        if ed is None or not ed.official_days:
            return None
        return sorted(set(ed.official_days))

    def festival_for_year(self, year: int) -> Optional[FestivalEdition]:
        for ed in self.editions:
            if ed.year == year:
                return ed
        return None

    def edition_on(self, day: date) -> Optional[FestivalEdition]:
        """Edition whose official days include `day`."""
        for ed in self.editions:
            if day in ed.official_days:
                return ed
        return None

    def override_for(self, event_id: Optional[str]) -> Optional[str]:
        if not event_id:
            return None
        return self.event_overrides.get(event_id)

    def festival_editions(self) -> List[FestivalEdition]:
        """Numbered editions, most recent first."""
        return sorted(self.editions, key=lambda e: e.year, reverse=True)


def load_calendar(path: Optional[str] = None) -> EditionCalendar:
    p = Path(path) if path else DEFAULT_PATH
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
        cal = EditionCalendar.model_validate(raw)
    except (OSError, ValueError, ValidationError) as e:
        raise CalendarError(f"Calendario edizioni non valido ({p}): {e}") from e
    log.info("calendar: v%s, %s editions, %s overrides", cal.version, len(cal.editions), len(cal.event_overrides))
    return cal
