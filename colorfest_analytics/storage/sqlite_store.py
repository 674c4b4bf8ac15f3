# colorfest_analytics/storage/sqlite_store.py
"""
SQLite tables for the two pieces of persisted state:

- ticket_snapshots: first-of-day sales count per event, never updated
- historical_daily_presenze: per edition/day deltas from the CSV import
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import date
from typing import Iterable, List, Optional

from colorfest_analytics.core.models import HistoricalDailyPresenze, SnapshotEntry

log = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


class _SqliteBase:
    _SCHEMA = ""

    def __init__(self, path: str = "colorfest.db") -> None:
        self.path = path
        # shared across asyncio.to_thread workers
        self.conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()
        try:
            self.conn.execute(self._SCHEMA)
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"{path}: {e}") from e

    def close(self) -> None:
        self.conn.close()


class SqliteSnapshotStore(_SqliteBase):
    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS ticket_snapshots (
            event_id TEXT NOT NULL,
            event_name TEXT NOT NULL,
            ticket_type TEXT,
            tickets_sold INTEGER NOT NULL,
            snapshot_date TEXT NOT NULL,
            PRIMARY KEY(event_id, snapshot_date)
        )
    """

    def insert_if_absent(self, entries: Iterable[SnapshotEntry]) -> int:
        """Insert rows, leaving any existing (event_id, snapshot_date) untouched."""
        params = [
            (e.event_id, e.event_name, e.ticket_type, e.tickets_sold, e.snapshot_date.isoformat())
            for e in entries
        ]
        if not params:
            return 0
        with self._lock:
            try:
                before = self.conn.total_changes
                self.conn.executemany(
                    """
                    INSERT OR IGNORE INTO ticket_snapshots
                    (event_id, event_name, ticket_type, tickets_sold, snapshot_date)
                    VALUES (?,?,?,?,?)
                    """,
                    params,
                )
                self.conn.commit()
                return self.conn.total_changes - before
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"ticket_snapshots insert: {e}") from e

    def _select(self, where: str, args: tuple) -> List[SnapshotEntry]:
        with self._lock:
            try:
                cur = self.conn.execute(
                    f"""
                    SELECT event_id, event_name, ticket_type, tickets_sold, snapshot_date
                    FROM ticket_snapshots
                    WHERE {where}
                    ORDER BY snapshot_date DESC, event_id ASC
                    """,
                    args,
                )
                rows = cur.fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"ticket_snapshots select: {e}") from e
        return [
            SnapshotEntry(
                event_id=r[0], event_name=r[1], ticket_type=r[2],
                tickets_sold=r[3], snapshot_date=date.fromisoformat(r[4]),
            )
            for r in rows
        ]

    def entries_for(self, day: date) -> List[SnapshotEntry]:
        return self._select("snapshot_date = ?", (day.isoformat(),))

    def entries_between(self, start: date, end: date) -> List[SnapshotEntry]:
        """Rows with start <= snapshot_date <= end, most recent first."""
        return self._select("snapshot_date >= ? AND snapshot_date <= ?", (start.isoformat(), end.isoformat()))

    def snapshot_dates(self, limit: int = 1000) -> List[date]:
        with self._lock:
            try:
                cur = self.conn.execute(
                    "SELECT DISTINCT snapshot_date FROM ticket_snapshots ORDER BY snapshot_date DESC LIMIT ?",
                    (limit,),
                )
                return [date.fromisoformat(r[0]) for r in cur.fetchall()]
            except sqlite3.Error as e:
                raise StorageError(f"ticket_snapshots dates: {e}") from e


class SqliteHistoricalStore(_SqliteBase):
    _SCHEMA = """
        CREATE TABLE IF NOT EXISTS historical_daily_presenze (
            edition_key TEXT NOT NULL,
            sale_date TEXT NOT NULL,
            presenze_delta INTEGER NOT NULL DEFAULT 0,
            tickets_delta INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY(edition_key, sale_date)
        )
    """

    def delete_all(self) -> int:
        with self._lock:
            try:
                cur = self.conn.execute("DELETE FROM historical_daily_presenze")
                self.conn.commit()
            except sqlite3.Error as e:
                raise StorageError(f"historical_daily_presenze delete: {e}") from e
        log.info("historical: %s rows deleted", cur.rowcount)
        return cur.rowcount

    def upsert_batch(self, rows: List[HistoricalDailyPresenze]) -> None:
        with self._lock:
            try:
                self.conn.executemany(
                    """
                    INSERT INTO historical_daily_presenze
                    (edition_key, sale_date, presenze_delta, tickets_delta)
                    VALUES (?,?,?,?)
                    ON CONFLICT(edition_key, sale_date) DO UPDATE SET
                        presenze_delta = excluded.presenze_delta,
                        tickets_delta = excluded.tickets_delta
                    """,
                    [(r.edition_key, r.sale_date.isoformat(), r.presenze_delta, r.tickets_delta) for r in rows],
                )
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(f"historical_daily_presenze upsert: {e}") from e

    def rows(self, edition_key: Optional[str] = None) -> List[HistoricalDailyPresenze]:
        sql = "SELECT edition_key, sale_date, presenze_delta, tickets_delta FROM historical_daily_presenze"
        args: tuple = ()
        if edition_key:
            sql += " WHERE edition_key = ?"
            args = (edition_key,)
        sql += " ORDER BY edition_key ASC, sale_date ASC"
        with self._lock:
            try:
                fetched = self.conn.execute(sql, args).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"historical_daily_presenze select: {e}") from e
        return [
            HistoricalDailyPresenze(
                edition_key=r[0], sale_date=date.fromisoformat(r[1]),
                presenze_delta=r[2], tickets_delta=r[3],
            )
            for r in fetched
        ]
