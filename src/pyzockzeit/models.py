"""Hub-facing identifiers, enums and property schemas.

The accessory presents itself as a thermostat: minutes are shown as degrees
Celsius, "heat" means the timer is running, and an optional switch triggers a
reset.  Enum values follow the usual HomeKit characteristic encoding.
"""

from __future__ import annotations

import enum
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class CharacteristicId(StrEnum):
    CURRENT_TEMPERATURE = "current_temperature"
    TARGET_TEMPERATURE = "target_temperature"
    CURRENT_HEATING_COOLING_STATE = "current_heating_cooling_state"
    TARGET_HEATING_COOLING_STATE = "target_heating_cooling_state"
    TEMPERATURE_DISPLAY_UNITS = "temperature_display_units"
    RESET_SWITCH = "reset_switch"


class ServiceKind(StrEnum):
    THERMOSTAT = "thermostat"
    SWITCH = "switch"


class CurrentHeatingCoolingState(enum.IntEnum):
    OFF = 0
    HEAT = 1


class TargetHeatingCoolingState(enum.IntEnum):
    OFF = 0
    HEAT = 1


class TemperatureDisplayUnits(enum.IntEnum):
    CELSIUS = 0
    FAHRENHEIT = 1


class CharacteristicProps(BaseModel):
    """Property schema the hub applies to a characteristic (``setProps``)."""

    model_config = ConfigDict(frozen=True)

    min_value: int | None = None
    max_value: int | None = None
    min_step: int | None = None
    valid_values: tuple[int, ...] | None = None


class ServiceSpec(BaseModel):
    """One hub service and the characteristics it carries."""

    model_config = ConfigDict(frozen=True)

    kind: ServiceKind
    name: str
    subtype: str | None = None
    characteristics: tuple[CharacteristicId, ...] = Field(default_factory=tuple)
