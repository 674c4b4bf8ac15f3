# colorfest_analytics/core/historical.py
"""
Offline import of a DICE transaction export into per-edition, per-day
presenze deltas, for editions sold before daily snapshots existed.

Only the columns below are read; every other column is ignored.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

import dateparser

from colorfest_analytics.core.calendar import EditionCalendar
from colorfest_analytics.core.editions import ANCILLARY_RE, CF_NUMBER_RE, COLOR_FEST_RE, presenze_multiplier
from colorfest_analytics.core.models import HistoricalDailyPresenze, ImportResult

log = logging.getLogger(__name__)

COL_TYPE = 4
COL_TRANSACTION_TS = 5
COL_QUANTITY = 8
COL_EVENT_DATE = 27
COL_EVENT_NAME = 28

CHARGE = "Charge"
BATCH_SIZE = 500


class HistoricalImportError(RuntimeError):
    pass


def _col(row: List[str], idx: int) -> str:
    return row[idx].strip() if idx < len(row) else ""


def _parse_when(value: str) -> Optional[datetime]:
    """ISO first, then dateparser for exports in other formats."""
    if not value:
        return None
    iso_try = value.strip()
    try:
        return datetime.fromisoformat(iso_try.replace("Z", "+00:00"))
    except ValueError:
        pass
    if re.match(r"^\d{4}-\d{2}-\d{2}\b", iso_try):
        try:
            return datetime.fromisoformat(iso_try[:10])
        except ValueError:
            return None
    return dateparser.parse(
        iso_try,
        languages=["it", "en"],
        settings={"RETURN_AS_TIMEZONE_AWARE": False, "DATE_ORDER": "DMY"},
    )


def _parse_qty(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        m = re.match(r"\s*(-?\d+)", value or "")
        return int(m.group(1)) if m else 0


def classify_historical(event_name: str, event_date: Optional[datetime], calendar: EditionCalendar) -> Optional[str]:
    """
    Festival edition a past sale belongs to, or None.

    Ancillary events (Winter Session, Pasquetta, Factory) are sold towards
    the next summer: from September on they count for the following
    edition.
    """
    m = CF_NUMBER_RE.search(event_name or "")
    if m:
        return f"cf-{int(m.group(1))}"

    if ANCILLARY_RE.search(event_name or ""):
        if event_date is None:
            return None
        rules = calendar.historical
        edition_year = event_date.year + 1 if event_date.month >= rules.fiscal_year_start_month else event_date.year
        key = f"cf-{edition_year - rules.edition_number_offset}"
        return key if calendar.edition(key) else None

    if COLOR_FEST_RE.search(event_name or ""):
        if event_date is None:
            return None
        ed = calendar.festival_for_year(event_date.year)
        return ed.key if ed else None

    return None


def aggregate_csv(text: str, calendar: EditionCalendar) -> Tuple[List[HistoricalDailyPresenze], int, int]:
    """Pure part of the import: (rows, processed, skipped)."""
    acc: Dict[Tuple[str, date], List[int]] = {}
    processed = skipped = 0

    reader = csv.reader(io.StringIO(text))
    next(reader, None)  # header
    for row in reader:
        if not row or not any(c.strip() for c in row):
            continue
        if _col(row, COL_TYPE) != CHARGE:
            skipped += 1
            continue

        ts = _col(row, COL_TRANSACTION_TS)
        name = _col(row, COL_EVENT_NAME)
        if not ts or not name:
            skipped += 1
            continue
        sold_at = _parse_when(ts)
        if sold_at is None:
            skipped += 1
            continue

        key = classify_historical(name, _parse_when(_col(row, COL_EVENT_DATE)), calendar)
        if key is None:
            skipped += 1
            continue

        qty = _parse_qty(_col(row, COL_QUANTITY))
        slot = acc.setdefault((key, sold_at.date()), [0, 0])
        slot[0] += qty * presenze_multiplier(name)
        slot[1] += qty
        processed += 1

    rows = [
        HistoricalDailyPresenze(edition_key=k, sale_date=d, presenze_delta=p, tickets_delta=t)
        for (k, d), (p, t) in sorted(acc.items())
    ]
    return rows, processed, skipped


def import_csv(text: str, store, calendar: EditionCalendar, batch_size: int = BATCH_SIZE) -> ImportResult:
    """
    Full refresh of the historical table: everything is deleted, then the
    aggregated rows are upserted in batches. Any storage error aborts.
    """
    rows, processed, skipped = aggregate_csv(text, calendar)
    log.info("historical: %s rows processed, %s skipped, %s edition/days", processed, skipped, len(rows))

    try:
        store.delete_all()
        for i in range(0, len(rows), batch_size):
            store.upsert_batch(rows[i:i + batch_size])
    except Exception as e:
        log.exception("historical: import aborted")
        raise HistoricalImportError(f"Batch insert error: {e}") from e

    return ImportResult(
        processed=processed,
        skipped=skipped,
        unique_days=len(rows),
        editions=sorted({r.edition_key for r in rows}),
    )
