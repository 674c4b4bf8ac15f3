from __future__ import annotations

import itertools
from datetime import datetime
from typing import Iterable, Optional

import pytest

from colorfest_analytics.core.calendar import load_calendar
from colorfest_analytics.core.models import Edition, RawEvent, TicketType
from colorfest_analytics.storage.sqlite_store import SqliteHistoricalStore, SqliteSnapshotStore

_ids = itertools.count(1)


def make_event(
    name: str,
    sold: int = 0,
    start: str = "2026-08-11T16:00:00+02:00",
    end: Optional[str] = None,
    id: Optional[str] = None,
    ticket_types: Iterable[str] = (),
    state: Optional[str] = "ON_SALE",
) -> RawEvent:
    return RawEvent(
        id=id or f"ev-{next(_ids)}",
        name=name,
        state=state,
        start_datetime=datetime.fromisoformat(start),
        end_datetime=datetime.fromisoformat(end) if end else None,
        ticket_types=[TicketType(id=f"tt-{i}", name=n) for i, n in enumerate(ticket_types)],
        tickets_sold=sold,
    )


def festival_edition() -> Edition:
    """The three-event Color Fest 14 line-up used across the aggregate tests."""
    return Edition(
        key="cf-14",
        label="Color Fest 14",
        year=2026,
        events=[
            make_event("Color Fest 14", 500, start="2026-08-11T16:00:00+02:00",
                       end="2026-08-14T02:00:00+02:00", id="cf14"),
            make_event("1 Day (11 Agosto)", 120, id="day11"),
            make_event("2 Days (12-13 Agosto)", 80, id="days1213"),
        ],
    )


@pytest.fixture
def calendar():
    return load_calendar()


@pytest.fixture
def edition():
    return festival_edition()


@pytest.fixture
def snapshot_store():
    store = SqliteSnapshotStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def historical_store():
    store = SqliteHistoricalStore(":memory:")
    yield store
    store.close()
