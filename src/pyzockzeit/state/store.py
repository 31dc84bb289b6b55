"""In-memory device state store.

This is the only component allowed to mutate :class:`DeviceState`.  Setters
compare, write and notify without awaiting anything, so logically concurrent
pollers and commands can never interleave inside a single update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from pyzockzeit.ingestion.normalize import clamp
from pyzockzeit.state.events import StateChange, StateField
from pyzockzeit.state.policy import HeatingState, heating_state

_logger = logging.getLogger(__name__)

StateListener = Callable[[StateChange], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DeviceState(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    current: int = 0
    target: int = 0
    is_on: bool = False
    last_update_at: datetime | None = None


class StateStore:
    """Single source of truth for current/target minutes and the on/off flag.

    Writers by convention: pollers write ``current`` (and ``target`` when the
    device reports it), commands write ``target`` and ``is_on``.
    """

    def __init__(
        self,
        min_value: int,
        max_value: int,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._min_value = min_value
        self._max_value = max_value
        self._clock = clock
        initial = clamp(0, min_value, max_value)
        self._state = DeviceState(current=initial, target=initial)
        self._heating_state = heating_state(initial, initial)
        self._listeners: list[StateListener] = []

    @property
    def min_value(self) -> int:
        return self._min_value

    @property
    def max_value(self) -> int:
        return self._max_value

    @property
    def heating_state(self) -> HeatingState:
        return self._heating_state

    def get_snapshot(self) -> DeviceState:
        """Return a detached copy of the current state."""
        return self._state.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for change events; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Drop every listener.  Later mutations are applied silently."""
        self._listeners.clear()

    def _emit(self, field: StateField, value: Any, previous: Any) -> None:
        if not self._listeners:
            return
        change = StateChange(field=field, value=value, previous=previous, observed_at=self._clock())
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.exception("State listener failed for %s", field)

    def _reevaluate(self) -> None:
        previous = self._heating_state
        self._heating_state = heating_state(self._state.current, self._state.target)
        # Notified on every current/target change, even when the derived value is unchanged.
        self._emit(StateField.HEATING_STATE, self._heating_state, previous)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_current(self, value: int) -> bool:
        value = clamp(int(value), self._min_value, self._max_value)
        previous = self._state.current
        if value == previous:
            return False
        self._state.current = value
        self._state.last_update_at = self._clock()
        self._emit(StateField.CURRENT, value, previous)
        self._reevaluate()
        return True

    def set_target(self, value: int) -> bool:
        value = clamp(int(value), self._min_value, self._max_value)
        previous = self._state.target
        if value == previous:
            return False
        self._state.target = value
        self._emit(StateField.TARGET, value, previous)
        self._reevaluate()
        return True

    def set_on(self, flag: bool) -> bool:
        flag = bool(flag)
        previous = self._state.is_on
        if flag == previous:
            return False
        self._state.is_on = flag
        self._emit(StateField.IS_ON, flag, previous)
        return True
