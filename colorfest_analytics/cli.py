from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import closing
from datetime import date
from pathlib import Path
from typing import List, Optional

from colorfest_analytics.core.calendar import load_calendar
from colorfest_analytics.core.comparison import compare_period
from colorfest_analytics.core.config import settings
from colorfest_analytics.core.historical import import_csv
from colorfest_analytics.core.live import LiveDashboard
from colorfest_analytics.core.logging import configure_logging
from colorfest_analytics.storage.sqlite_store import SqliteHistoricalStore, SqliteSnapshotStore
from colorfest_analytics.storage import google_sheets
from colorfest_analytics.adapters import REGISTRY

log = logging.getLogger(__name__)


def _dump(obj) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


async def run_fetch(args: argparse.Namespace) -> int:
    calendar = load_calendar(settings.editions_config_path or None)
    with closing(SqliteSnapshotStore(settings.snapshot_db_path)) as store:
        return await _fetch_report(args, calendar, store)


async def _fetch_report(args: argparse.Namespace, calendar, store) -> int:
    dash = LiveDashboard(REGISTRY["dice"], store, tz=settings.timezone)

    await dash.refresh()
    if dash.state.error:
        log.error("Dice: %s", dash.state.error)
        return 1

    report = dash.report(calendar, settings.targets(), args.edition, settings.current_edition_key or None)
    if report is None:
        log.warning("Nessun dato disponibile")
        return 1

    if args.export_gsheet:
        await google_sheets.export_report_gsheet(report)
    if args.export_csv:
        path = google_sheets.export_report_csv(report, settings.export_csv_dir)
        log.info("csv: %s", path)
    _dump(report.model_dump(mode="json"))
    return 0


async def run_poll(args: argparse.Namespace) -> int:
    calendar = load_calendar(settings.editions_config_path or None)
    with closing(SqliteSnapshotStore(settings.snapshot_db_path)) as store:
        return await _poll(args, calendar, store)


async def _poll(args: argparse.Namespace, calendar, store) -> int:
    dash = LiveDashboard(REGISTRY["dice"], store, tz=settings.timezone)

    async def _after_refresh(d: LiveDashboard) -> None:
        report = d.report(calendar, settings.targets(), current_key=settings.current_edition_key or None)
        if report is None:
            return
        log.info("poll: %s, %s biglietti, %s presenze", report.key, report.total_tickets, report.total_presenze)
        if args.export_gsheet:
            try:
                await google_sheets.export_report_gsheet(report)
            except Exception:
                log.exception("gsheets: export failed")

    await dash.poll(args.interval or settings.poll_interval_s, args.iterations, on_refresh=_after_refresh)
    return 0


def run_import(args: argparse.Namespace) -> int:
    calendar = load_calendar(settings.editions_config_path or None)
    text = Path(args.path).read_text(encoding="utf-8-sig")
    with closing(SqliteHistoricalStore(settings.snapshot_db_path)) as store:
        result = import_csv(text, store, calendar, batch_size=settings.historical_batch_size)
    _dump(result.model_dump(mode="json"))
    return 0


def run_compare(args: argparse.Namespace) -> int:
    calendar = load_calendar(settings.editions_config_path or None)
    start = date.fromisoformat(args.date_from)
    end = date.fromisoformat(args.date_to) if args.date_to else start
    with closing(SqliteSnapshotStore(settings.snapshot_db_path)) as snaps, \
            closing(SqliteHistoricalStore(settings.snapshot_db_path)) as hist:
        rows = compare_period(snaps, hist, calendar, start, end, reference_key=args.reference)
    _dump([r.model_dump(mode="json") for r in rows])
    return 0


def run_snapshot_dates(args: argparse.Namespace) -> int:
    with closing(SqliteSnapshotStore(settings.snapshot_db_path)) as store:
        dates = store.snapshot_dates(args.limit)
    _dump([d.isoformat() for d in dates])
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="colorfest", description="Color Fest Analytics")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    f = sub.add_parser("fetch", help="fetch DICE events once and print the edition report")
    f.add_argument("--edition", help="edition key (default: current edition)")
    f.add_argument("--export-gsheet", action="store_true")
    f.add_argument("--export-csv", action="store_true")

    pl = sub.add_parser("poll", help="refresh every --interval seconds")
    pl.add_argument("--interval", type=float)
    pl.add_argument("--iterations", type=int)
    pl.add_argument("--export-gsheet", action="store_true")

    i = sub.add_parser("import-csv", help="replace historical presenze with a DICE transaction export")
    i.add_argument("path")

    c = sub.add_parser("compare", help="compare the same period across editions")
    c.add_argument("--from", dest="date_from", required=True)
    c.add_argument("--to", dest="date_to")
    c.add_argument("--reference")

    s = sub.add_parser("snapshot-dates", help="days with a stored baseline")
    s.add_argument("--limit", type=int, default=1000)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        if args.command == "fetch":
            return asyncio.run(run_fetch(args))
        if args.command == "poll":
            return asyncio.run(run_poll(args))
        if args.command == "import-csv":
            return run_import(args)
        if args.command == "compare":
            return run_compare(args)
        return run_snapshot_dates(args)
    except Exception:
        log.exception("%s: failed", args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
