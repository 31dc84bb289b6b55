"""pyzockzeit - Async engine exposing a ZockZeit HTTP timer as a thermostat accessory."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyzockzeit")
except PackageNotFoundError:
    __version__ = "0+local"
from pyzockzeit.accessory import ZockZeitAccessory
from pyzockzeit.commands import CommandDispatcher, gather_all
from pyzockzeit.config import AccessoryConfig, EndpointSet, PollConfig
from pyzockzeit.exceptions import (
    FetchErrorKind,
    ZockZeitConfigError,
    ZockZeitError,
    ZockZeitFetchError,
    ZockZeitStateError,
)
from pyzockzeit.facade import AccessoryFacade, CharacteristicHooks, Notifier
from pyzockzeit.ingestion.normalize import normalize_measurement
from pyzockzeit.ingestion.poller import PeriodicPoller, PollerPair, PollerState
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
from pyzockzeit.state.policy import HeatingState, heating_state
from pyzockzeit.state.store import DeviceState, StateStore

__all__ = [
    "__version__",
    "AccessoryConfig",
    "AccessoryFacade",
    "CharacteristicHooks",
    "CharacteristicId",
    "CharacteristicProps",
    "CommandDispatcher",
    "CurrentHeatingCoolingState",
    "DeviceState",
    "EndpointSet",
    "FetchErrorKind",
    "HeatingState",
    "Notifier",
    "PeriodicPoller",
    "PollConfig",
    "PollerPair",
    "PollerState",
    "ServiceKind",
    "ServiceSpec",
    "StateChange",
    "StateField",
    "StateStore",
    "TargetHeatingCoolingState",
    "TemperatureDisplayUnits",
    "ZockZeitAccessory",
    "ZockZeitConfigError",
    "ZockZeitError",
    "ZockZeitFetchError",
    "ZockZeitStateError",
    "gather_all",
    "heating_state",
    "normalize_measurement",
]
