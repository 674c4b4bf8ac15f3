from datetime import date

import pytest

from colorfest_analytics.core.models import SnapshotEntry
from colorfest_analytics.core.snapshots import (
    capture_baseline,
    compute_delta,
    day_over_day,
    get_baseline,
    pct_change,
)
from colorfest_analytics.storage.sqlite_store import SqliteSnapshotStore, StorageError

from conftest import make_event

DAY = date(2026, 7, 1)


def test_first_capture_of_the_day_wins(snapshot_store):
    first = [make_event("A", 10, id="a"), make_event("B", 5, id="b")]
    assert capture_baseline(snapshot_store, first, DAY) == 2

    later = [make_event("A", 25, id="a"), make_event("B", 9, id="b"), make_event("C", 1, id="c")]
    assert capture_baseline(snapshot_store, later, DAY) == 1

    baseline = {s.event_id: s.tickets_sold for s in get_baseline(snapshot_store, DAY)}
    assert baseline == {"a": 10, "b": 5, "c": 1}


def test_cancelled_events_are_not_captured(snapshot_store):
    capture_baseline(snapshot_store, [make_event("X", 3, id="x", state="CANCELLED")], DAY)
    assert get_baseline(snapshot_store, DAY) == []


def test_capture_with_nothing_to_write(snapshot_store):
    assert capture_baseline(snapshot_store, [], DAY) == 0


def test_snapshot_dates_most_recent_first(snapshot_store):
    for d in (date(2026, 6, 29), date(2026, 7, 1), date(2026, 6, 30)):
        capture_baseline(snapshot_store, [make_event("A", 1, id="a")], d)
    assert snapshot_store.snapshot_dates() == [date(2026, 7, 1), date(2026, 6, 30), date(2026, 6, 29)]
    assert snapshot_store.snapshot_dates(limit=1) == [date(2026, 7, 1)]
    between = snapshot_store.entries_between(date(2026, 6, 30), date(2026, 7, 1))
    assert [e.snapshot_date for e in between] == [date(2026, 7, 1), date(2026, 6, 30)]


def test_store_survives_reopen(tmp_path):
    path = str(tmp_path / "snap.db")
    store = SqliteSnapshotStore(path)
    capture_baseline(store, [make_event("A", 7, id="a")], DAY)
    store.close()

    reopened = SqliteSnapshotStore(path)
    assert [s.tickets_sold for s in get_baseline(reopened, DAY)] == [7]
    reopened.close()


def test_closed_store_raises_storage_error(tmp_path):
    store = SqliteSnapshotStore(str(tmp_path / "snap.db"))
    store.close()
    with pytest.raises(StorageError):
        store.entries_for(DAY)


def test_compute_delta_floors_at_zero_and_counts_new_events():
    baseline = [
        SnapshotEntry(event_id="a", event_name="A", tickets_sold=10, snapshot_date=DAY),
        SnapshotEntry(event_id="b", event_name="B", tickets_sold=8, snapshot_date=DAY),
    ]
    current = [make_event("A", 15, id="a"), make_event("B", 6, id="b"), make_event("C", 4, id="c")]
    delta = compute_delta(current, baseline)
    assert [d.delta for d in delta.events] == [5, 0, 4]
    assert delta.total == 9


@pytest.mark.parametrize(
    "today,yesterday,expected",
    [(30, 20, 50), (10, 20, -50), (0, 0, None), (5, 0, None), (1, 3, -67), (1, 8, -87), (3, 8, -62)],
)
def test_pct_change(today, yesterday, expected):
    assert pct_change(today, yesterday) == expected


def test_day_over_day_ignores_events_new_today():
    today_b = [SnapshotEntry(event_id="a", event_name="A", tickets_sold=10, snapshot_date=DAY)]
    yest_b = [SnapshotEntry(event_id="a", event_name="A", tickets_sold=4, snapshot_date=date(2026, 6, 30))]
    current = [make_event("A", 12, id="a"), make_event("B", 3, id="b")]
    dod = day_over_day(current, today_b, yest_b)
    assert (dod.sold_today, dod.sold_yesterday, dod.pct_change) == (5, 6, -17)
