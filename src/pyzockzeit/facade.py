"""Adapter between the async core and a callback-style smart-home hub.

The hub drives each characteristic through ``get(callback)`` and
``set(value, callback)`` hooks and wants ``update_characteristic`` pushes
when values change on their own.  Nothing in here knows the hub's concrete
types; it only needs something that satisfies :class:`Notifier`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from pyzockzeit.commands import CommandDispatcher
from pyzockzeit.config import EndpointSet
from pyzockzeit.exceptions import ZockZeitError, ZockZeitStateError
from pyzockzeit.models import (
    CharacteristicId,
    CharacteristicProps,
    CurrentHeatingCoolingState,
    ServiceKind,
    ServiceSpec,
    TargetHeatingCoolingState,
    TemperatureDisplayUnits,
)
from pyzockzeit.state.events import StateChange, StateField
from pyzockzeit.state.policy import HeatingState
from pyzockzeit.state.store import StateStore

_logger = logging.getLogger(__name__)

GetCallback = Callable[[BaseException | None, Any], None]
SetCallback = Callable[[BaseException | None], None]


class Notifier(Protocol):
    """Receives value-changed pushes for the hub."""

    def update_characteristic(self, characteristic: CharacteristicId, value: Any) -> None:
        ...


class CharacteristicHooks:
    """``get``/``set`` hook pair for one characteristic.

    ``set`` schedules the async handler on the running loop and reports the
    outcome through *callback*; handler exceptions become the callback's
    error argument instead of propagating into the hub.
    """

    def __init__(
        self,
        characteristic: CharacteristicId,
        getter: Callable[[], Any],
        setter: Callable[[Any], Awaitable[Any]] | None = None,
        *,
        props: CharacteristicProps | None = None,
    ) -> None:
        self.characteristic = characteristic
        self.props = props or CharacteristicProps()
        self._getter = getter
        self._setter = setter
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def writable(self) -> bool:
        return self._setter is not None

    def get(self, callback: GetCallback) -> None:
        try:
            value = self._getter()
        except Exception as exc:
            callback(exc, None)
            return
        callback(None, value)

    def set(self, value: Any, callback: SetCallback) -> asyncio.Task[None] | None:
        if self._setter is None:
            callback(ZockZeitError(f"{self.characteristic} is read-only"))
            return None
        task = asyncio.get_running_loop().create_task(self._run_set(value, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel_pending(self) -> list[asyncio.Task[None]]:
        """Cancel set handlers still in flight and return their tasks."""
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        self._tasks.clear()
        return tasks

    async def async_set(self, value: Any) -> None:
        """Awaitable variant of :meth:`set` for hubs that speak asyncio."""
        if self._setter is None:
            raise ZockZeitError(f"{self.characteristic} is read-only")
        await self._setter(value)

    async def _run_set(self, value: Any, callback: SetCallback) -> None:
        try:
            await self._setter(value)  # type: ignore[misc]
        except asyncio.CancelledError:
            callback(ZockZeitStateError(f"{self.characteristic} write cancelled"))
            raise
        except Exception as exc:
            callback(exc)
            return
        callback(None)


def heating_cooling_state(state: HeatingState) -> CurrentHeatingCoolingState:
    if state == HeatingState.HEATING:
        return CurrentHeatingCoolingState.HEAT
    return CurrentHeatingCoolingState.OFF


class AccessoryFacade:
    """Exposes the store and dispatcher as thermostat (+ reset switch) characteristics."""

    def __init__(
        self,
        name: str,
        store: StateStore,
        dispatcher: CommandDispatcher,
        endpoints: EndpointSet,
    ) -> None:
        self._name = name
        self._store = store
        self._dispatcher = dispatcher
        self._endpoints = endpoints
        self._notifier: Notifier | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._hooks = self._build_hooks()

    def _build_hooks(self) -> dict[CharacteristicId, CharacteristicHooks]:
        temp_props = CharacteristicProps(
            min_value=self._store.min_value,
            max_value=self._store.max_value,
            min_step=1,
        )
        hooks = [
            CharacteristicHooks(
                CharacteristicId.CURRENT_TEMPERATURE,
                lambda: self._store.get_snapshot().current,
                props=temp_props,
            ),
            CharacteristicHooks(
                CharacteristicId.TARGET_TEMPERATURE,
                lambda: self._store.get_snapshot().target,
                self._dispatcher.set_target,
                props=temp_props,
            ),
            CharacteristicHooks(
                CharacteristicId.TEMPERATURE_DISPLAY_UNITS,
                lambda: TemperatureDisplayUnits.CELSIUS,
            ),
            CharacteristicHooks(
                CharacteristicId.CURRENT_HEATING_COOLING_STATE,
                lambda: heating_cooling_state(self._store.heating_state),
            ),
            CharacteristicHooks(
                CharacteristicId.TARGET_HEATING_COOLING_STATE,
                self._get_target_heating_cooling_state,
                self._set_target_heating_cooling_state,
                props=CharacteristicProps(
                    valid_values=(int(TargetHeatingCoolingState.OFF), int(TargetHeatingCoolingState.HEAT)),
                ),
            ),
        ]
        if self._endpoints.reset_url:
            hooks.append(
                CharacteristicHooks(
                    CharacteristicId.RESET_SWITCH,
                    lambda: False,
                    self._dispatcher.reset,
                )
            )
        return {hook.characteristic: hook for hook in hooks}

    def _get_target_heating_cooling_state(self) -> TargetHeatingCoolingState:
        if self._store.get_snapshot().is_on:
            return TargetHeatingCoolingState.HEAT
        return TargetHeatingCoolingState.OFF

    async def _set_target_heating_cooling_state(self, value: Any) -> None:
        await self._dispatcher.set_on(value == TargetHeatingCoolingState.HEAT)

    # ------------------------------------------------------------------
    # Hub wiring
    # ------------------------------------------------------------------

    @property
    def hooks(self) -> Mapping[CharacteristicId, CharacteristicHooks]:
        return self._hooks

    def services(self) -> list[ServiceSpec]:
        thermostat = ServiceSpec(
            kind=ServiceKind.THERMOSTAT,
            name=self._name,
            characteristics=tuple(c for c in self._hooks if c != CharacteristicId.RESET_SWITCH),
        )
        services = [thermostat]
        if CharacteristicId.RESET_SWITCH in self._hooks:
            services.append(
                ServiceSpec(
                    kind=ServiceKind.SWITCH,
                    name=f"{self._name} Reset",
                    subtype="reset",
                    characteristics=(CharacteristicId.RESET_SWITCH,),
                )
            )
        return services

    def attach(self, notifier: Notifier) -> None:
        """Start forwarding store changes to *notifier*."""
        self.detach()
        self._notifier = notifier
        self._unsubscribe = self._store.subscribe(self._on_state_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._notifier = None

    def _push(self, characteristic: CharacteristicId, value: Any) -> None:
        if self._notifier is None:
            return
        self._notifier.update_characteristic(characteristic, value)

    def _on_state_change(self, change: StateChange) -> None:
        if change.field == StateField.CURRENT:
            self._push(CharacteristicId.CURRENT_TEMPERATURE, change.value)
        elif change.field == StateField.TARGET:
            self._push(CharacteristicId.TARGET_TEMPERATURE, change.value)
        elif change.field == StateField.HEATING_STATE:
            self._push(CharacteristicId.CURRENT_HEATING_COOLING_STATE, heating_cooling_state(change.value))
        elif change.field == StateField.IS_ON:
            state = TargetHeatingCoolingState.HEAT if change.value else TargetHeatingCoolingState.OFF
            self._push(CharacteristicId.TARGET_HEATING_COOLING_STATE, state)

    def cancel_pending(self) -> list[asyncio.Task[None]]:
        """Cancel in-flight hub writes on every characteristic."""
        cancelled: list[asyncio.Task[None]] = []
        for hook in self._hooks.values():
            cancelled.extend(hook.cancel_pending())
        return cancelled

    def update_reset_switch(self, on: bool) -> None:
        """Flip the reset switch indicator (used to turn it back off after a reset)."""
        if CharacteristicId.RESET_SWITCH not in self._hooks:
            return
        _logger.debug("Reset switch -> %s", on)
        self._push(CharacteristicId.RESET_SWITCH, on)
