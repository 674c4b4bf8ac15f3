# colorfest_analytics/core/live.py
"""
Live fetch cycle: DICE events -> first-of-day baseline -> report.

At most one fetch runs at a time. A refresh asked for while another is in
flight (timer vs. manual refresh) is dropped, not queued, so two cycles
never race on the day's baseline.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, List, Optional
from zoneinfo import ZoneInfo

from colorfest_analytics.core.aggregate import build_report
from colorfest_analytics.core.calendar import EditionCalendar
from colorfest_analytics.core.days import DEFAULT_TZ
from colorfest_analytics.core.editions import current_edition, group_editions
from colorfest_analytics.core.models import DashboardState, DashboardTargets, EditionReport, RawEvent
from colorfest_analytics.core.snapshots import capture_baseline, get_baseline
from colorfest_analytics.storage.sqlite_store import StorageError

log = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[List[RawEvent]]]


class LiveDashboard:
    def __init__(
        self,
        fetch: Fetcher,
        store=None,
        tz: str = DEFAULT_TZ,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._fetch = fetch
        self.store = store
        self.tz = tz
        self._clock = clock or (lambda: datetime.now(ZoneInfo(self.tz)))
        self._lock = asyncio.Lock()
        self.state = DashboardState()

    def today(self) -> date:
        return self._clock().date()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def refresh(self) -> bool:
        """False when dropped because a fetch is already running."""
        if self._lock.locked():
            log.info("live: fetch already in flight, refresh dropped")
            return False

        async with self._lock:
            self.state.loading = True
            self.state.error = None
            try:
                events = await self._fetch()
                self.state.events = events
                self.state.fetched_at = self._clock()
                log.info("live: %s events fetched", len(events))
                await self._load_baselines(events)
            except Exception as e:
                # previous events stay on screen
                log.exception("live: fetch failed")
                self.state.error = str(e) or e.__class__.__name__
            finally:
                self.state.loading = False
        return True

    async def _load_baselines(self, events: List[RawEvent]) -> None:
        if self.store is None:
            self.state.today_baseline = self.state.yesterday_baseline = None
            return
        today = self.today()
        try:
            await asyncio.to_thread(capture_baseline, self.store, events, today)
            today_b = await asyncio.to_thread(get_baseline, self.store, today)
            yest_b = await asyncio.to_thread(get_baseline, self.store, today - timedelta(days=1))
        except StorageError:
            log.warning("live: baseline unavailable, showing totals only", exc_info=True)
            today_b = yest_b = None
        self.state.today_baseline = today_b
        # no row for yesterday means no comparison, not zero sales
        self.state.yesterday_baseline = yest_b or None

    async def poll(
        self,
        interval_s: float,
        iterations: Optional[int] = None,
        on_refresh: Optional[Callable[["LiveDashboard"], Awaitable[None]]] = None,
    ) -> None:
        n = 0
        while iterations is None or n < iterations:
            if await self.refresh() and on_refresh is not None:
                await on_refresh(self)
            n += 1
            if iterations is not None and n >= iterations:
                break
            await asyncio.sleep(interval_s)

    def report(
        self,
        calendar: EditionCalendar,
        targets: Optional[DashboardTargets] = None,
        edition_key: Optional[str] = None,
        current_key: Optional[str] = None,
    ) -> Optional[EditionReport]:
        """
        Report for `edition_key` (default: the current edition). Today's
        sales are only overlaid on the current edition.
        """
        editions = group_editions(self.state.events, calendar)
        current = current_edition(editions, current_key)
        if current is None:
            return None
        selected = current
        if edition_key:
            selected = next((e for e in editions if e.key == edition_key), None)
            if selected is None:
                return None

        is_current = selected.key == current.key
        return build_report(
            selected,
            calendar,
            targets,
            today_baseline=self.state.today_baseline if is_current else None,
            yesterday_baseline=self.state.yesterday_baseline if is_current else None,
            tz=self.tz,
        )
