import csv
import json
from dataclasses import replace

import pytest

from colorfest_analytics import cli
from colorfest_analytics.adapters.dice import DiceApiError
from colorfest_analytics.storage.sqlite_store import SqliteSnapshotStore

from conftest import festival_edition


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    patched = replace(
        cli.settings,
        snapshot_db_path=str(tmp_path / "cf.db"),
        editions_config_path="",
        current_edition_key="",
        sales_goal=6000,
        export_csv_dir=str(tmp_path / "exports"),
    )
    monkeypatch.setattr(cli, "settings", patched)
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    return tmp_path


def _fake_fetch(events):
    async def fetch():
        return events
    return fetch


def test_fetch_prints_report_and_writes_csv(cli_env, monkeypatch, capsys):
    monkeypatch.setitem(cli.REGISTRY, "dice", _fake_fetch(festival_edition().events))

    assert cli.main(["fetch", "--export-csv"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["key"] == "cf-14"
    assert report["total_presenze"] == 1780
    assert report["goal"]["remaining"] == 4220
    # first poll of the day: baseline equals current sales
    assert report["today_total"]["sold_today"] == 0
    assert len(list((cli_env / "exports").iterdir())) == 1


def test_fetch_error_exit_code(cli_env, monkeypatch):
    async def failing():
        raise DiceApiError("DICE API error: 503")

    monkeypatch.setitem(cli.REGISTRY, "dice", failing)
    assert cli.main(["fetch"]) == 1


def test_import_compare_and_dates(cli_env, capsys):
    path = cli_env / "export.csv"
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow([f"col{i}" for i in range(29)])
        row = [""] * 29
        row[4], row[5], row[8], row[27], row[28] = "Charge", "2025-07-03T10:00:00", "2", "2025-08-12", "Color Fest 13"
        w.writerow(row)

    assert cli.main(["import-csv", str(path)]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result == {"processed": 1, "skipped": 0, "unique_days": 1, "editions": ["cf-13"]}

    assert cli.main(["compare", "--from", "2026-07-01", "--to", "2026-07-10"]) == 0
    rows = {r["edition_key"]: r for r in json.loads(capsys.readouterr().out)}
    assert rows["cf-13"]["presenze"] == 2
    assert rows["cf-13"]["source"] == "historical"
    assert rows["cf-14"]["source"] == "none"

    assert cli.main(["snapshot-dates"]) == 0
    assert json.loads(capsys.readouterr().out) == []


def test_missing_csv_file(cli_env):
    assert cli.main(["import-csv", str(cli_env / "missing.csv")]) == 1


class _TrackedStore(SqliteSnapshotStore):
    opened = []

    def __init__(self, path):
        super().__init__(path)
        self.closed = False
        _TrackedStore.opened.append(self)

    def close(self):
        self.closed = True
        super().close()


def test_stores_closed_after_failed_fetch(cli_env, monkeypatch):
    async def failing():
        raise DiceApiError("DICE API error: 503")

    _TrackedStore.opened = []
    monkeypatch.setattr(cli, "SqliteSnapshotStore", _TrackedStore)
    monkeypatch.setitem(cli.REGISTRY, "dice", failing)

    assert cli.main(["fetch"]) == 1
    assert cli.main(["snapshot-dates"]) == 0
    assert [s.closed for s in _TrackedStore.opened] == [True, True]
