"""Change events emitted by the state store."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StateField(StrEnum):
    CURRENT = "current"
    TARGET = "target"
    IS_ON = "is_on"
    HEATING_STATE = "heating_state"


class StateChange(BaseModel):
    """A single confirmed change of one store field (or the derived state)."""

    model_config = ConfigDict(frozen=True)

    field: StateField
    value: Any
    previous: Any = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
