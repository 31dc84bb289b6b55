"""Derived heating/idle state.

This module intentionally contains *no* I/O or store access; the store calls
:func:`heating_state` after every confirmed change of ``current`` or
``target``.
"""

from __future__ import annotations

from enum import StrEnum


class HeatingState(StrEnum):
    IDLE = "idle"
    HEATING = "heating"


def heating_state(current: int, target: int) -> HeatingState:
    """Idle once the elapsed time has reached the target, heating before that."""
    if current >= target:
        return HeatingState.IDLE
    return HeatingState.HEATING
