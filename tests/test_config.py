from colorfest_analytics.core.config import _opt_int


def test_default_only_when_unset(monkeypatch):
    monkeypatch.delenv("SALES_GOAL", raising=False)
    assert _opt_int("SALES_GOAL", 6000) == 6000


def test_explicit_zero_goal_is_kept(monkeypatch):
    monkeypatch.setenv("SALES_GOAL", "0")
    assert _opt_int("SALES_GOAL", 6000) == 0


def test_empty_value_means_no_goal(monkeypatch):
    monkeypatch.setenv("SALES_GOAL", " ")
    assert _opt_int("SALES_GOAL", 6000) is None
    monkeypatch.setenv("CAPACITY_PER_DAY", "1200")
    assert _opt_int("CAPACITY_PER_DAY") == 1200
