from datetime import datetime

import pytest

from colorfest_analytics.core.editions import (
    classify,
    classify_name,
    current_edition,
    group_editions,
    presenze_multiplier,
)

from conftest import make_event


@pytest.mark.parametrize(
    "name,when,key,label",
    [
        ("Color Fest 14 - 2 Days", "2026-08-12T18:00:00", "cf-14", "Color Fest 14"),
        ("colorfest 9", "2021-08-12T18:00:00", "cf-9", "Color Fest 9"),
        ("Winter Session", "2025-12-20T22:00:00", "winter-2025", "Winter Session 2025"),
        ("Pasquetta al Parco", "2026-04-06T12:00:00", "pasquetta-2026", "Pasquetta 2026"),
        ("Color Fest Day Party", "2025-07-20T18:00:00", "cf-summer-2025", "Color Fest 2025"),
        ("Color Fest Day Party", "2025-03-20T18:00:00", "other-2025", "Altri Eventi 2025"),
        ("Concerto Jazz", "2024-05-01T21:00:00", "other-2024", "Altri Eventi 2024"),
    ],
)
def test_classify_name(calendar, name, when, key, label):
    ident = classify_name(name, datetime.fromisoformat(when), calendar)
    assert (ident.key, ident.label) == (key, label)


def test_override_wins_over_name(calendar):
    ev = make_event("Color Fest Day 1", start="2022-08-10T16:00:00", id="RXZlbnQ6MTExMDEz")
    ident = classify(ev, calendar)
    assert ident.key == "cf-10"
    assert ident.label == "Color Fest 10"
    assert ident.year == 2022


def test_override_applies_even_to_numbered_names(calendar):
    ev = make_event("Color Fest 12 promo", start="2023-08-10T16:00:00", id="RXZlbnQ6MTYzMzE2")
    assert classify(ev, calendar).key == "cf-11"


def test_group_editions_drops_cancelled_and_sorts_by_year(calendar):
    events = [
        make_event("Color Fest 13", 10, start="2025-08-12T16:00:00"),
        make_event("Color Fest 14", 20, start="2026-08-11T16:00:00"),
        make_event("Color Fest 14 - 1 Day", 5, start="2026-08-12T16:00:00"),
        make_event("Color Fest 14 old", 99, start="2026-08-11T16:00:00", state="cancelled"),
        make_event("Winter Session", 7, start="2026-01-10T22:00:00"),
    ]
    editions = group_editions(events, calendar)
    assert [e.key for e in editions] == ["cf-14", "winter-2026", "cf-13"]
    assert [ev.tickets_sold for ev in editions[0].events] == [20, 5]


def test_group_editions_empty(calendar):
    assert group_editions([], calendar) == []
    assert current_edition([]) is None


def test_current_edition_prefers_key_then_highest_number(calendar):
    events = [
        make_event("Color Fest 13", start="2025-08-12T16:00:00"),
        make_event("Color Fest 14", start="2026-08-11T16:00:00"),
        make_event("Pasquetta", start="2027-04-01T12:00:00"),
    ]
    editions = group_editions(events, calendar)
    assert editions[0].key == "pasquetta-2027"
    assert current_edition(editions).key == "cf-14"
    assert current_edition(editions, "cf-13").key == "cf-13"
    assert current_edition(editions, "cf-99").key == "cf-14"


def test_current_edition_without_numbered_editions(calendar):
    editions = group_editions([make_event("Winter Session", start="2026-01-10T22:00:00")], calendar)
    assert current_edition(editions).key == "winter-2026"


@pytest.mark.parametrize(
    "name,mult",
    [
        ("2 Days (12-13 Agosto)", 2),
        ("Color Fest 14 - 2 Day", 2),
        ("Abbonamento Full", 3),
        ("Full Pass", 3),
        ("Full 1 Day", 1),
        ("1 Day (11 Agosto)", 1),
        ("Winter Session Abbonamento", 2),
        ("Winter Session", 1),
        ("Pasquetta Full", 1),
        ("", 1),
    ],
)
def test_presenze_multiplier(name, mult):
    assert presenze_multiplier(name) == mult


def test_classification_is_deterministic(calendar):
    ev = make_event("Color Fest 14 - 1 Day (11 Agosto)", start="2026-08-11T16:00:00")
    assert classify(ev, calendar) == classify(ev, calendar)


def test_day_tickets_join_the_festival_of_their_days(calendar):
    events = [
        make_event("Color Fest 14", 500, id="cf14"),
        make_event("1 Day (11 Agosto)", 120, id="day11"),
        make_event("2 Days (12-13 Agosto)", 80, id="days1213"),
        make_event("Presale 13 Agosto", 10, start="2026-03-01T10:00:00+01:00", id="presale"),
        make_event("Aperitivo", 5, start="2026-08-12T19:00:00+02:00", id="aperitivo"),
        make_event("Cena di gala", 5, start="2026-05-01T20:00:00+02:00", id="cena"),
    ]
    editions = {e.key: [ev.id for ev in e.events] for e in group_editions(events, calendar)}
    assert editions == {
        "cf-14": ["cf14", "day11", "days1213", "presale", "aperitivo"],
        "other-2026": ["cena"],
    }


def test_festival_day_match_keeps_calendar_label(calendar):
    ident = classify(make_event("1 Day (11 Agosto)", start="2026-08-11T16:00:00+02:00"), calendar)
    assert (ident.key, ident.label, ident.year) == ("cf-14", "Color Fest 14", 2026)
