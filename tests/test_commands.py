from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import pytest

from pyzockzeit.commands import CommandDispatcher, gather_all, render_target_url
from pyzockzeit.config import EndpointSet
from pyzockzeit.exceptions import FetchErrorKind, ZockZeitFetchError
from pyzockzeit.state.policy import HeatingState
from pyzockzeit.state.store import StateStore

ELAPSED_URL = "http://dev/elapsed"


@dataclass
class RecordingFetcher:
    failing: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0

    async def fetch(self, url: str, timeout: float) -> str:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
        finally:
            self.in_flight -= 1
        if url in self.failing:
            raise ZockZeitFetchError("unreachable", kind=FetchErrorKind.NETWORK, url=url)
        return "ok"


def _dispatcher(
    endpoints: EndpointSet,
    fetcher: RecordingFetcher,
    store: StateStore | None = None,
    **kwargs: object,
) -> tuple[CommandDispatcher, StateStore]:
    store = store or StateStore(0, 240)
    return CommandDispatcher(store, endpoints, fetcher, timeout=1.0, **kwargs), store  # type: ignore[arg-type]


# ------------------------------------------------------------------
# gather_all
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_gather_all_returns_results_in_order() -> None:
    async def _value(v: int) -> int:
        await asyncio.sleep(0)
        return v

    assert await gather_all([_value(1), _value(2), _value(3)]) == [1, 2, 3]


@pytest.mark.asyncio
async def test_gather_all_waits_for_everything_before_raising() -> None:
    finished: list[str] = []

    async def _ok(name: str, delay: float) -> None:
        await asyncio.sleep(delay)
        finished.append(name)

    async def _fail() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await gather_all([_ok("a", 0.0), _fail(), _ok("c", 0.02)])

    assert finished == ["a", "c"]


# ------------------------------------------------------------------
# Target
# ------------------------------------------------------------------


def test_render_target_url_supports_both_placeholders() -> None:
    assert render_target_url("http://dev/set?m={value}", 50) == "http://dev/set?m=50"
    assert render_target_url("http://dev/set?m={kovalue}", 7) == "http://dev/set?m=7"


@pytest.mark.asyncio
async def test_set_target_pushes_clamped_value() -> None:
    fetcher = RecordingFetcher()
    dispatcher, store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, set_target_url_template="http://dev/set?m={value}"),
        fetcher,
    )

    assert await dispatcher.set_target(500) == 240

    assert fetcher.calls == ["http://dev/set?m=240"]
    assert store.get_snapshot().target == 240


@pytest.mark.asyncio
async def test_set_target_failure_reports_error_but_keeps_stored_target() -> None:
    fetcher = RecordingFetcher(failing={"http://dev/set?m=50"})
    dispatcher, store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, set_target_url_template="http://dev/set?m={value}"),
        fetcher,
    )

    with pytest.raises(ZockZeitFetchError):
        await dispatcher.set_target(50)

    assert store.get_snapshot().target == 50
    assert store.heating_state == HeatingState.HEATING


@pytest.mark.asyncio
async def test_set_target_without_template_is_local_only() -> None:
    fetcher = RecordingFetcher()
    dispatcher, store = _dispatcher(EndpointSet(elapsed_url=ELAPSED_URL), fetcher)

    assert await dispatcher.set_target(42.7) == 42

    assert fetcher.calls == []
    assert store.get_snapshot().target == 42


# ------------------------------------------------------------------
# On/off
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_set_on_fans_out_concurrently() -> None:
    urls = ("http://a/on", "http://b/on", "http://c/on")
    fetcher = RecordingFetcher()
    dispatcher, store = _dispatcher(EndpointSet(elapsed_url=ELAPSED_URL, turn_on_urls=urls), fetcher)

    await dispatcher.set_on(True)

    assert sorted(fetcher.calls) == sorted(urls)
    assert fetcher.max_in_flight == 3
    assert store.get_snapshot().is_on is True


@pytest.mark.asyncio
async def test_set_on_twice_issues_no_additional_requests() -> None:
    fetcher = RecordingFetcher()
    dispatcher, _store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, turn_on_urls=("http://a/on",)),
        fetcher,
    )

    await dispatcher.set_on(True)
    await dispatcher.set_on(True)

    assert fetcher.calls == ["http://a/on"]


@pytest.mark.asyncio
async def test_one_failing_url_fails_command_but_others_still_requested() -> None:
    urls = ("http://a/on", "http://b/on", "http://c/on")
    fetcher = RecordingFetcher(failing={"http://b/on"})
    dispatcher, store = _dispatcher(EndpointSet(elapsed_url=ELAPSED_URL, turn_on_urls=urls), fetcher)

    with pytest.raises(ZockZeitFetchError) as exc_info:
        await dispatcher.set_on(True)

    assert exc_info.value.url == "http://b/on"
    assert fetcher.calls.count("http://a/on") == 1
    assert fetcher.calls.count("http://c/on") == 1
    # optimistic write is not rolled back
    assert store.get_snapshot().is_on is True


@pytest.mark.asyncio
async def test_set_off_uses_off_urls() -> None:
    fetcher = RecordingFetcher()
    dispatcher, store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, turn_on_urls=("http://a/on",), turn_off_urls=("http://a/off",)),
        fetcher,
    )
    store.set_on(True)

    await dispatcher.set_on(False)

    assert fetcher.calls == ["http://a/off"]
    assert store.get_snapshot().is_on is False


@pytest.mark.asyncio
async def test_empty_url_list_warns_and_succeeds(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="pyzockzeit.commands")
    fetcher = RecordingFetcher()
    dispatcher, store = _dispatcher(EndpointSet(elapsed_url=ELAPSED_URL), fetcher)

    await dispatcher.set_on(True)

    assert fetcher.calls == []
    assert store.get_snapshot().is_on is True
    assert any("No URLs configured to turn on" in r.getMessage() for r in caplog.records)


# ------------------------------------------------------------------
# Reset
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reset_without_url_warns_and_issues_no_request(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="pyzockzeit.commands")
    fetcher = RecordingFetcher()
    dispatcher, _store = _dispatcher(EndpointSet(elapsed_url=ELAPSED_URL), fetcher)

    await dispatcher.reset(True)

    assert fetcher.calls == []
    assert any("no resetURL configured" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_reset_false_is_a_noop() -> None:
    fetcher = RecordingFetcher()
    dispatcher, _store = _dispatcher(EndpointSet(elapsed_url=ELAPSED_URL, reset_url="http://dev/reset"), fetcher)

    await dispatcher.reset(False)

    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_reset_success_schedules_switch_off_and_repoll() -> None:
    fetcher = RecordingFetcher()
    indicator: list[bool] = []
    repolls: list[str] = []
    dispatcher, _store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, reset_url="http://dev/reset"),
        fetcher,
        reset_indicator=indicator.append,
        force_poll=lambda: repolls.append("elapsed"),
        reset_switch_delay=0.01,
        reset_repoll_delay=0.02,
    )

    await dispatcher.reset(True)

    assert fetcher.calls == ["http://dev/reset"]
    assert dispatcher.pending_followups == 2
    await asyncio.sleep(0.05)
    assert indicator == [False]
    assert repolls == ["elapsed"]
    assert dispatcher.pending_followups == 0


@pytest.mark.asyncio
async def test_reset_failure_schedules_nothing() -> None:
    fetcher = RecordingFetcher(failing={"http://dev/reset"})
    indicator: list[bool] = []
    dispatcher, _store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, reset_url="http://dev/reset"),
        fetcher,
        reset_indicator=indicator.append,
        reset_switch_delay=0.0,
    )

    with pytest.raises(ZockZeitFetchError):
        await dispatcher.reset(True)

    await asyncio.sleep(0.01)
    assert dispatcher.pending_followups == 0
    assert indicator == []


@pytest.mark.asyncio
async def test_cancel_pending_drops_followups() -> None:
    fetcher = RecordingFetcher()
    indicator: list[bool] = []
    dispatcher, _store = _dispatcher(
        EndpointSet(elapsed_url=ELAPSED_URL, reset_url="http://dev/reset"),
        fetcher,
        reset_indicator=indicator.append,
        reset_switch_delay=0.01,
    )

    await dispatcher.reset(True)
    dispatcher.cancel_pending()
    dispatcher.cancel_pending()
    await asyncio.sleep(0.03)

    assert indicator == []
