"""High-level accessory tying pollers, commands and the hub facade together."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from pyzockzeit._constants import RESET_REPOLL_DELAY_S, RESET_SWITCH_DELAY_S
from pyzockzeit._transport import Fetcher, HttpFetcher
from pyzockzeit.commands import CommandDispatcher
from pyzockzeit.config import AccessoryConfig, EndpointSet, PollConfig
from pyzockzeit.exceptions import ZockZeitStateError
from pyzockzeit.facade import AccessoryFacade, Notifier
from pyzockzeit.ingestion.poller import PollerPair
from pyzockzeit.models import ServiceSpec
from pyzockzeit.state.store import DeviceState, StateStore

_logger = logging.getLogger(__name__)


class ZockZeitAccessory:
    """A ZockZeit timer presented to the hub as a thermostat.

    Usage::

        async with ZockZeitAccessory(raw_config, notifier=hub_service) as accessory:
            for service in accessory.services():
                register(service, accessory.facade.hooks)
            ...

    Components are wired at construction so the hub can register hooks right
    away; polling and HTTP only start inside ``async with`` (or
    :meth:`start`) and stop on exit.
    """

    def __init__(
        self,
        config: AccessoryConfig | Mapping[str, Any],
        *,
        session: aiohttp.ClientSession | None = None,
        fetcher: Fetcher | None = None,
        notifier: Notifier | None = None,
        reset_switch_delay: float = RESET_SWITCH_DELAY_S,
        reset_repoll_delay: float = RESET_REPOLL_DELAY_S,
    ) -> None:
        if not isinstance(config, AccessoryConfig):
            config = AccessoryConfig.from_mapping(config)
        self._config = config
        self._endpoints: EndpointSet = config.endpoints()
        self._poll_config: PollConfig = config.poll_config()
        self._external_session = session is not None
        self._http_session = session
        self._injected_fetcher = fetcher
        self._fetcher: Fetcher | None = fetcher
        self._notifier = notifier
        self._running = False

        self._store = StateStore(config.min_temp, config.max_temp)
        self._pollers = PollerPair.build(self._endpoints, self._poll_config, self._store, self)
        self._dispatcher = CommandDispatcher(
            self._store,
            self._endpoints,
            self,
            timeout=self._poll_config.request_timeout_s,
            reset_indicator=self._on_reset_indicator,
            force_poll=self._pollers.force_elapsed_poll,
            reset_switch_delay=reset_switch_delay,
            reset_repoll_delay=reset_repoll_delay,
        )
        self._facade = AccessoryFacade(config.name, self._store, self._dispatcher, self._endpoints)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ZockZeitAccessory:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Open the HTTP session (unless injected) and start both pollers."""
        if self._running:
            return
        if self._fetcher is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._fetcher = HttpFetcher(self._http_session)
        if self._notifier is not None:
            self._facade.attach(self._notifier)
        self._running = True
        self._pollers.start()
        _logger.info("ZockZeit accessory initialized: %s", self._config.name)

    async def stop(self) -> None:
        """Stop polling, cancel pending writes and follow-ups, then release the HTTP session.

        Safe to call repeatedly.
        """
        if not self._running:
            return
        _logger.info("Shutting down ZockZeit accessory: %s", self._config.name)
        self._running = False
        self._pollers.stop()
        self._dispatcher.cancel_pending()
        writes = self._facade.cancel_pending()
        self._facade.detach()
        self._store.close()
        await self._pollers.wait_stopped()
        for task in writes:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._fetcher = self._injected_fetcher

    # ------------------------------------------------------------------
    # Fetcher seam
    # ------------------------------------------------------------------

    async def fetch(self, url: str, timeout: float) -> str:
        """Fetcher protocol entry point used by the pollers and the dispatcher."""
        fetcher = self._fetcher
        if fetcher is None or not self._running:
            raise ZockZeitStateError("Accessory not started. Use 'async with ZockZeitAccessory(...)'")
        return await fetcher.fetch(url, timeout)

    def _on_reset_indicator(self, on: bool) -> None:
        self._facade.update_reset_switch(on)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> AccessoryConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def pollers(self) -> PollerPair:
        return self._pollers

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def facade(self) -> AccessoryFacade:
        return self._facade

    def snapshot(self) -> DeviceState:
        return self._store.get_snapshot()

    def services(self) -> list[ServiceSpec]:
        return self._facade.services()
