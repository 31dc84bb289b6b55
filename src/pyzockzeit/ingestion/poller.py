"""Periodic pollers for the elapsed and target endpoints.

Each poller ticks once immediately on :meth:`PeriodicPoller.start` and then at
a fixed rate.  A tick fetches, normalizes and hands the value to a store
setter.  Fetch failures are logged and leave the store untouched, so the last
known good value survives transient outages.

Ticks are not serialized: if a fetch is still outstanding when the next tick
fires, both run.  Every tick is tracked so :meth:`PeriodicPoller.stop` can
cancel it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum

from pyzockzeit._redact import redact_url
from pyzockzeit._transport import Fetcher
from pyzockzeit.config import EndpointSet, PollConfig
from pyzockzeit.exceptions import ZockZeitFetchError
from pyzockzeit.ingestion.normalize import normalize_measurement
from pyzockzeit.state.store import StateStore

_logger = logging.getLogger(__name__)


class PollerState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    UPDATED = "updated"
    FAILED = "failed"


class PeriodicPoller:
    """Fetch-normalize-apply loop for a single endpoint."""

    def __init__(
        self,
        name: str,
        url: str,
        interval: float,
        apply: Callable[[int], bool],
        fetcher: Fetcher,
        *,
        timeout: float,
        min_value: int,
        max_value: int,
    ) -> None:
        self._name = name
        self._url = url
        self._interval = interval
        self._apply = apply
        self._fetcher = fetcher
        self._timeout = timeout
        self._min_value = min_value
        self._max_value = max_value
        self._timer_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[bool]] = set()
        self._cancelled: list[asyncio.Task[object]] = []
        self._fetching = 0
        self._last_outcome: PollerState | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def state(self) -> PollerState:
        return PollerState.FETCHING if self._fetching else PollerState.IDLE

    @property
    def last_outcome(self) -> PollerState | None:
        """``UPDATED`` or ``FAILED`` for the most recently finished tick."""
        return self._last_outcome

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._timer_task = loop.create_task(self._run(), name=f"pyzockzeit-poll-{self._name}")

    def stop(self) -> None:
        """Cancel the timer and every in-flight tick.  Safe to call repeatedly."""
        timer = self._timer_task
        self._timer_task = None
        if timer is not None and not timer.done():
            timer.cancel()
            self._cancelled.append(timer)
        for task in list(self._ticks):
            if not task.done():
                task.cancel()
                self._cancelled.append(task)
        self._ticks.clear()

    async def wait_stopped(self) -> None:
        """Wait until tasks cancelled by :meth:`stop` have finished unwinding."""
        pending, self._cancelled = self._cancelled, []
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            self.poll_now()
            await asyncio.sleep(self._interval)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def poll_now(self) -> asyncio.Task[bool]:
        """Start an out-of-band tick and return its task."""
        if self._fetching:
            _logger.debug("%s poll still in flight; starting another", self._name)
        task = asyncio.get_running_loop().create_task(self.poll_once())
        self._ticks.add(task)
        task.add_done_callback(self._on_tick_done)
        return task

    def _on_tick_done(self, task: asyncio.Task[bool]) -> None:
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Unexpected error in %s poll", self._name, exc_info=exc)

    async def poll_once(self) -> bool:
        """Run one fetch-normalize-apply cycle; return whether the store changed."""
        self._fetching += 1
        try:
            raw = await self._fetcher.fetch(self._url, self._timeout)
        except ZockZeitFetchError as exc:
            self._last_outcome = PollerState.FAILED
            _logger.warning("Error updating %s from %s: %s", self._name, redact_url(self._url), exc)
            return False
        finally:
            self._fetching -= 1

        value = normalize_measurement(raw, self._min_value, self._max_value)
        changed = self._apply(value)
        self._last_outcome = PollerState.UPDATED
        if changed:
            _logger.debug("%s updated to %d", self._name, value)
        return changed


class PollerPair:
    """The elapsed and target pollers, started and stopped together.

    Either poller is ``None`` when its URL is not configured.
    """

    def __init__(self, elapsed: PeriodicPoller | None, target: PeriodicPoller | None) -> None:
        self.elapsed = elapsed
        self.target = target

    @classmethod
    def build(
        cls,
        endpoints: EndpointSet,
        poll_config: PollConfig,
        store: StateStore,
        fetcher: Fetcher,
    ) -> PollerPair:
        elapsed: PeriodicPoller | None = None
        target: PeriodicPoller | None = None
        if endpoints.elapsed_url:
            elapsed = PeriodicPoller(
                "elapsed time",
                endpoints.elapsed_url,
                poll_config.elapsed_interval_s,
                store.set_current,
                fetcher,
                timeout=poll_config.request_timeout_s,
                min_value=store.min_value,
                max_value=store.max_value,
            )
        if endpoints.target_url:
            target = PeriodicPoller(
                "target time",
                endpoints.target_url,
                poll_config.target_interval_s,
                store.set_target,
                fetcher,
                timeout=poll_config.request_timeout_s,
                min_value=store.min_value,
                max_value=store.max_value,
            )
        return cls(elapsed, target)

    def _pollers(self) -> list[PeriodicPoller]:
        return [p for p in (self.elapsed, self.target) if p is not None]

    @property
    def is_running(self) -> bool:
        return any(p.is_running for p in self._pollers())

    def start(self) -> None:
        for poller in self._pollers():
            poller.start()

    def stop(self) -> None:
        for poller in self._pollers():
            poller.stop()

    async def wait_stopped(self) -> None:
        for poller in self._pollers():
            await poller.wait_stopped()

    def force_elapsed_poll(self) -> asyncio.Task[bool] | None:
        """Re-poll the elapsed endpoint ahead of its schedule (used after a reset)."""
        if self.elapsed is None:
            _logger.debug("No elapsed time URL configured; skipping forced poll")
            return None
        return self.elapsed.poll_now()
