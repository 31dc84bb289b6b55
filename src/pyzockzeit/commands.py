"""User-initiated commands: set target, switch on/off, reset.

Target and on/off are written to the store *before* the device is told,
so the hub reflects the user's intent even when the push fails.  Failures
are not rolled back; they are raised to the caller, which reports them
through the hub's error channel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from pyzockzeit._constants import RESET_REPOLL_DELAY_S, RESET_SWITCH_DELAY_S, TARGET_PLACEHOLDERS
from pyzockzeit._redact import redact_url
from pyzockzeit._transport import Fetcher
from pyzockzeit.config import EndpointSet
from pyzockzeit.exceptions import ZockZeitFetchError
from pyzockzeit.ingestion.normalize import clamp
from pyzockzeit.state.store import StateStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_all(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Wait for every awaitable to settle, then raise the first error, if any.

    Unlike a plain :func:`asyncio.gather`, a failure does not leave the other
    requests unobserved: all of them run to completion before anything is
    raised.  "First" means first in argument order.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)  # type: ignore[arg-type]


def render_target_url(template: str, value: int) -> str:
    """Substitute *value* into the ``{value}`` (or legacy ``{kovalue}``) placeholder."""
    url = template
    for placeholder in TARGET_PLACEHOLDERS:
        url = url.replace(placeholder, str(value))
    return url


class CommandDispatcher:
    """Executes set-target, on/off and reset intents against the device."""

    def __init__(
        self,
        store: StateStore,
        endpoints: EndpointSet,
        fetcher: Fetcher,
        *,
        timeout: float,
        reset_indicator: Callable[[bool], None] | None = None,
        force_poll: Callable[[], Any] | None = None,
        reset_switch_delay: float = RESET_SWITCH_DELAY_S,
        reset_repoll_delay: float = RESET_REPOLL_DELAY_S,
    ) -> None:
        self._store = store
        self._endpoints = endpoints
        self._fetcher = fetcher
        self._timeout = timeout
        self._reset_indicator = reset_indicator
        self._force_poll = force_poll
        self._reset_switch_delay = reset_switch_delay
        self._reset_repoll_delay = reset_repoll_delay
        self._pending: set[asyncio.TimerHandle] = set()

    # ------------------------------------------------------------------
    # Target
    # ------------------------------------------------------------------

    async def set_target(self, raw_value: float) -> int:
        """Store the clamped target and push it to the device if a template is configured.

        Returns the clamped value.  Raises
        :class:`~pyzockzeit.exceptions.ZockZeitFetchError` when the push fails;
        the store keeps the new target regardless.
        """
        value = clamp(int(raw_value), self._store.min_value, self._store.max_value)
        self._store.set_target(value)

        template = self._endpoints.set_target_url_template
        if not template:
            return value

        url = render_target_url(template, value)
        try:
            await self._fetcher.fetch(url, self._timeout)
        except ZockZeitFetchError as exc:
            _logger.error("Failed to set target time: %s", exc)
            raise
        _logger.info("Target time set to %d minutes via %s", value, redact_url(url))
        return value

    # ------------------------------------------------------------------
    # On/off
    # ------------------------------------------------------------------

    async def set_on(self, flag: bool) -> None:
        """Switch the timer on or off by requesting every configured URL concurrently.

        Idempotent: an unchanged flag issues no requests.  The command fails
        if at least one request failed, after all of them have settled.
        """
        turn_on = bool(flag)
        if not self._store.set_on(turn_on):
            _logger.debug("Timer already %s", "on" if turn_on else "off")
            return

        urls = self._endpoints.turn_on_urls if turn_on else self._endpoints.turn_off_urls
        action = "turn on" if turn_on else "turn off"

        if not urls:
            _logger.warning("No URLs configured to %s", action)
            return

        await gather_all(self._send_action(url, action) for url in urls)
        _logger.info("Timer %s successful", action)

    async def _send_action(self, url: str, action: str) -> None:
        try:
            await self._fetcher.fetch(url, self._timeout)
        except ZockZeitFetchError as exc:
            _logger.error("Failed to %s via %s: %s", action, redact_url(url), exc)
            raise
        _logger.info("Successfully sent %s request to %s", action, redact_url(url))

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    async def reset(self, flag: bool) -> None:
        """Request the reset URL when *flag* is truthy.

        On success the reset switch is flipped back off after a short delay,
        and the elapsed endpoint is re-polled a little later so the post-reset
        reading shows up before the next scheduled poll.
        """
        if not flag:
            return

        url = self._endpoints.reset_url
        if not url:
            _logger.warning("Reset requested but no resetURL configured")
            return

        try:
            await self._fetcher.fetch(url, self._timeout)
        except ZockZeitFetchError as exc:
            _logger.error("Failed to reset timer: %s", exc)
            raise
        _logger.info("Timer reset successful")

        if self._reset_indicator is not None:
            self._schedule(self._reset_switch_delay, self._reset_indicator, False)
        if self._force_poll is not None:
            self._schedule(self._reset_repoll_delay, self._force_poll)

    def _schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._pending.discard(handle)
            callback(*args)

        handle = loop.call_later(delay, _fire)
        self._pending.add(handle)

    @property
    def pending_followups(self) -> int:
        return len(self._pending)

    def cancel_pending(self) -> None:
        """Cancel scheduled reset follow-ups.  Safe to call repeatedly."""
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()
