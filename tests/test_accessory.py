from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyzockzeit import (
    CharacteristicId,
    CurrentHeatingCoolingState,
    HeatingState,
    ZockZeitAccessory,
    ZockZeitConfigError,
    ZockZeitFetchError,
    ZockZeitStateError,
)
from pyzockzeit.exceptions import FetchErrorKind


@dataclass
class FakeTimerDevice:
    """In-memory ZockZeit timer answering the configured URLs."""

    elapsed: str = "37"
    target: str = "0"
    unreachable: set[str] = field(default_factory=set)
    calls: dict[str, int] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)

    async def fetch(self, url: str, timeout: float) -> str:
        self.calls[url] = self.calls.get(url, 0) + 1
        if url in self.gates:
            await self.gates[url].wait()
        await asyncio.sleep(0)
        if url in self.unreachable:
            raise ZockZeitFetchError("connection refused", kind=FetchErrorKind.NETWORK, url=url)
        if url == "http://dev/elapsed":
            return self.elapsed
        if url == "http://dev/target":
            return self.target
        if url.startswith("http://dev/set?m="):
            self.target = url.rsplit("=", 1)[1]
            return "OK"
        if url == "http://dev/reset":
            self.elapsed = "0"
            return "OK"
        return "OK"


@dataclass
class RecordingNotifier:
    updates: list[tuple[CharacteristicId, Any]] = field(default_factory=list)

    def update_characteristic(self, characteristic: CharacteristicId, value: Any) -> None:
        self.updates.append((characteristic, value))


async def _wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


def _config(**extra: Any) -> dict[str, Any]:
    return {
        "accessory": "ZockZeit",
        "name": "Gaming PC",
        "elapsedTimeURL": "http://dev/elapsed",
        "minTemp": 0,
        "maxTemp": 240,
        **extra,
    }


@pytest.mark.asyncio
async def test_first_elapsed_reading_is_idle_with_default_target() -> None:
    device = FakeTimerDevice(elapsed="37")
    notifier = RecordingNotifier()

    async with ZockZeitAccessory(_config(), fetcher=device, notifier=notifier) as accessory:
        await _wait_for(lambda: accessory.snapshot().current == 37)

        assert accessory.snapshot().target == 0
        assert accessory.store.heating_state == HeatingState.IDLE
        assert accessory.snapshot().last_update_at is not None

    assert (CharacteristicId.CURRENT_TEMPERATURE, 37) in notifier.updates
    assert (
        CharacteristicId.CURRENT_HEATING_COOLING_STATE,
        CurrentHeatingCoolingState.OFF,
    ) in notifier.updates


@pytest.mark.asyncio
async def test_target_poll_and_elapsed_poll_combine_into_heating() -> None:
    device = FakeTimerDevice(elapsed="20", target="60")

    async with ZockZeitAccessory(
        _config(targetTimeURL="http://dev/target"),
        fetcher=device,
    ) as accessory:
        await _wait_for(lambda: accessory.snapshot().target == 60 and accessory.snapshot().current == 20)

        assert accessory.store.heating_state == HeatingState.HEATING


@pytest.mark.asyncio
async def test_set_target_with_unreachable_push_keeps_target() -> None:
    device = FakeTimerDevice(unreachable={"http://dev/set?m=50"})

    async with ZockZeitAccessory(
        _config(setTargetTimeURL="http://dev/set?m={value}"),
        fetcher=device,
    ) as accessory:
        with pytest.raises(ZockZeitFetchError):
            await accessory.dispatcher.set_target(50)

        assert accessory.snapshot().target == 50


@pytest.mark.asyncio
async def test_reset_flow_repolls_elapsed_and_turns_switch_off() -> None:
    device = FakeTimerDevice(elapsed="90")
    notifier = RecordingNotifier()

    async with ZockZeitAccessory(
        _config(resetURL="http://dev/reset"),
        fetcher=device,
        notifier=notifier,
        reset_switch_delay=0.01,
        reset_repoll_delay=0.02,
    ) as accessory:
        await _wait_for(lambda: accessory.snapshot().current == 90)

        await accessory.dispatcher.reset(True)
        await _wait_for(lambda: accessory.snapshot().current == 0)

        assert (CharacteristicId.RESET_SWITCH, False) in notifier.updates
        assert device.calls["http://dev/elapsed"] == 2


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_halts_polling() -> None:
    device = FakeTimerDevice()
    accessory = ZockZeitAccessory(_config(elapsedPollInterval=1), fetcher=device)

    await accessory.start()
    await _wait_for(lambda: accessory.snapshot().current == 37)
    await accessory.stop()
    await accessory.stop()

    assert not accessory.is_running
    assert not accessory.pollers.is_running
    calls = dict(device.calls)
    await asyncio.sleep(0.01)
    assert device.calls == calls


@pytest.mark.asyncio
async def test_commands_before_start_raise_state_error() -> None:
    accessory = ZockZeitAccessory(
        _config(setTargetTimeURL="http://dev/set?m={value}"),
        fetcher=FakeTimerDevice(),
    )

    with pytest.raises(ZockZeitStateError):
        await accessory.dispatcher.set_target(10)


def test_invalid_config_is_fatal_at_construction() -> None:
    with pytest.raises(ZockZeitConfigError):
        ZockZeitAccessory({"name": "broken"})


def test_services_are_available_before_start() -> None:
    accessory = ZockZeitAccessory(_config(resetURL="http://dev/reset"), fetcher=FakeTimerDevice())

    assert [s.name for s in accessory.services()] == ["Gaming PC", "Gaming PC Reset"]


@pytest.mark.asyncio
async def test_owned_http_session_is_closed_on_exit() -> None:
    accessory = ZockZeitAccessory(_config(elapsedTimeURL="http://127.0.0.1:1/elapsed"))

    async with accessory:
        session = accessory._http_session  # noqa: SLF001
        assert session is not None
        await _wait_for(lambda: accessory.pollers.elapsed is not None
                        and accessory.pollers.elapsed.last_outcome is not None, timeout=3.0)

    assert session.closed
    assert accessory.snapshot().current == 0


@pytest.mark.asyncio
async def test_stop_cancels_hub_write_in_flight() -> None:
    gate = asyncio.Event()
    device = FakeTimerDevice(gates={"http://dev/on": gate})
    errors: list[BaseException | None] = []
    accessory = ZockZeitAccessory(_config(turnOnURLs=["http://dev/on"]), fetcher=device)

    await accessory.start()
    hook = accessory.facade.hooks[CharacteristicId.TARGET_HEATING_COOLING_STATE]
    task = hook.set(1, errors.append)
    assert task is not None
    await _wait_for(lambda: device.calls.get("http://dev/on") == 1)

    await accessory.stop()

    assert task.cancelled()
    assert len(errors) == 1
    assert isinstance(errors[0], ZockZeitStateError)
    gate.set()
    await asyncio.sleep(0.01)
    assert device.calls["http://dev/on"] == 1
