"""Accessory configuration for pyzockzeit.

The hub hands the accessory a raw JSON-ish mapping with camelCase keys
(``elapsedTimeURL``, ``turnOnURLs``, ...).  :class:`AccessoryConfig` parses
and clamps it exactly once; the immutable :class:`EndpointSet` and
:class:`PollConfig` derived from it are what the runtime components consume.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from pyzockzeit._constants import (
    DEFAULT_ELAPSED_POLL_S,
    DEFAULT_MAX_TEMP,
    DEFAULT_MIN_TEMP,
    DEFAULT_NAME,
    DEFAULT_REQUEST_TIMEOUT_MS,
    DEFAULT_TARGET_POLL_S,
    ELAPSED_POLL_MAX_S,
    ELAPSED_POLL_MIN_S,
    REQUEST_TIMEOUT_MAX_MS,
    REQUEST_TIMEOUT_MIN_MS,
    TARGET_POLL_MAX_S,
    TARGET_POLL_MIN_S,
)
from pyzockzeit.exceptions import ZockZeitConfigError


def _clamp_number(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _falsy_to_default(value: Any, default: Any) -> Any:
    # Hub configs commonly carry 0, "" or null for "not set".
    if value is None or value == "" or value == 0:
        return default
    return value


@dataclasses.dataclass(frozen=True)
class EndpointSet:
    """Remote URLs the accessory talks to.

    Parameters
    ----------
    elapsed_url : str or None
        Returns the elapsed/current minutes as a bare integer.
    target_url : str or None
        Returns the target minutes as a bare integer.
    set_target_url_template : str or None
        URL with a ``{value}`` placeholder used to push a new target.
    turn_on_urls, turn_off_urls : tuple of str
        Requested concurrently when the timer is switched on or off.
    reset_url : str or None
        Requested when the reset switch is flipped on.
    """

    elapsed_url: str | None = None
    target_url: str | None = None
    set_target_url_template: str | None = None
    turn_on_urls: tuple[str, ...] = ()
    turn_off_urls: tuple[str, ...] = ()
    reset_url: str | None = None

    def __post_init__(self) -> None:
        if not self.elapsed_url and not self.target_url:
            raise ZockZeitConfigError("At least one of elapsedTimeURL or targetTimeURL must be configured")


@dataclasses.dataclass(frozen=True)
class PollConfig:
    """Poll/request timing in milliseconds, already clamped."""

    elapsed_interval_ms: int = DEFAULT_ELAPSED_POLL_S * 1000
    target_interval_ms: int = DEFAULT_TARGET_POLL_S * 1000
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS

    @property
    def elapsed_interval_s(self) -> float:
        return self.elapsed_interval_ms / 1000

    @property
    def target_interval_s(self) -> float:
        return self.target_interval_ms / 1000

    @property
    def request_timeout_s(self) -> float:
        return self.request_timeout_ms / 1000


class AccessoryConfig(BaseModel):
    """Validated accessory configuration.

    Field aliases match the keys of the hub's accessory JSON block, so a raw
    block can be passed straight to :meth:`from_mapping`.  Intervals are
    clamped here and never revalidated later.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = DEFAULT_NAME
    elapsed_time_url: str | None = Field(default=None, alias="elapsedTimeURL")
    target_time_url: str | None = Field(default=None, alias="targetTimeURL")
    set_target_time_url: str | None = Field(default=None, alias="setTargetTimeURL")
    turn_on_urls: tuple[str, ...] = Field(default=(), alias="turnOnURLs")
    turn_off_urls: tuple[str, ...] = Field(default=(), alias="turnOffURLs")
    reset_url: str | None = Field(default=None, alias="resetURL")
    elapsed_poll_interval: float = Field(default=DEFAULT_ELAPSED_POLL_S, alias="elapsedPollInterval")
    target_poll_interval: float = Field(default=DEFAULT_TARGET_POLL_S, alias="targetPollInterval")
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT_MS, alias="requestTimeout")
    min_temp: int = Field(default=DEFAULT_MIN_TEMP, alias="minTemp")
    max_temp: int = Field(default=DEFAULT_MAX_TEMP, alias="maxTemp")

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value: Any) -> Any:
        return value or DEFAULT_NAME

    @field_validator("elapsed_time_url", "target_time_url", "set_target_time_url", "reset_url", mode="before")
    @classmethod
    def _empty_url_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value or None

    @field_validator("turn_on_urls", "turn_off_urls", mode="before")
    @classmethod
    def _coerce_url_list(cls, value: Any) -> tuple[str, ...]:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(str(item).strip() for item in value if isinstance(item, str) and item.strip())

    @field_validator("elapsed_poll_interval", mode="before")
    @classmethod
    def _default_elapsed_interval(cls, value: Any) -> Any:
        return _falsy_to_default(value, DEFAULT_ELAPSED_POLL_S)

    @field_validator("target_poll_interval", mode="before")
    @classmethod
    def _default_target_interval(cls, value: Any) -> Any:
        return _falsy_to_default(value, DEFAULT_TARGET_POLL_S)

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _default_request_timeout(cls, value: Any) -> Any:
        return _falsy_to_default(value, DEFAULT_REQUEST_TIMEOUT_MS)

    @field_validator("min_temp", mode="before")
    @classmethod
    def _default_min_temp(cls, value: Any) -> Any:
        return _falsy_to_default(value, DEFAULT_MIN_TEMP)

    @field_validator("max_temp", mode="before")
    @classmethod
    def _default_max_temp(cls, value: Any) -> Any:
        return _falsy_to_default(value, DEFAULT_MAX_TEMP)

    @field_validator("elapsed_poll_interval")
    @classmethod
    def _clamp_elapsed_interval(cls, value: float) -> float:
        return _clamp_number(value, ELAPSED_POLL_MIN_S, ELAPSED_POLL_MAX_S)

    @field_validator("target_poll_interval")
    @classmethod
    def _clamp_target_interval(cls, value: float) -> float:
        return _clamp_number(value, TARGET_POLL_MIN_S, TARGET_POLL_MAX_S)

    @field_validator("request_timeout")
    @classmethod
    def _clamp_request_timeout(cls, value: float) -> float:
        # Whole milliseconds.
        return float(round(_clamp_number(value, REQUEST_TIMEOUT_MIN_MS, REQUEST_TIMEOUT_MAX_MS)))

    @model_validator(mode="after")
    def _check_required(self) -> AccessoryConfig:
        if not self.elapsed_time_url and not self.target_time_url:
            raise ValueError("At least one of elapsedTimeURL or targetTimeURL must be configured")
        if self.min_temp > self.max_temp:
            raise ValueError(f"minTemp ({self.min_temp}) must not exceed maxTemp ({self.max_temp})")
        return self

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> AccessoryConfig:
        """Parse a raw hub configuration block.

        Raises
        ------
        ZockZeitConfigError
            If required URLs are missing or a value has the wrong type.
        """
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as exc:
            raise ZockZeitConfigError(f"Invalid accessory configuration: {exc}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> AccessoryConfig:
        """Create configuration from ``ZOCKZEIT_*`` environment variables.

        URL lists are comma separated.  Explicit keyword arguments (by field
        name) override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "ZOCKZEIT_NAME": "name",
            "ZOCKZEIT_ELAPSED_TIME_URL": "elapsed_time_url",
            "ZOCKZEIT_TARGET_TIME_URL": "target_time_url",
            "ZOCKZEIT_SET_TARGET_TIME_URL": "set_target_time_url",
            "ZOCKZEIT_RESET_URL": "reset_url",
            "ZOCKZEIT_ELAPSED_POLL_INTERVAL": "elapsed_poll_interval",
            "ZOCKZEIT_TARGET_POLL_INTERVAL": "target_poll_interval",
            "ZOCKZEIT_REQUEST_TIMEOUT": "request_timeout",
            "ZOCKZEIT_MIN_TEMP": "min_temp",
            "ZOCKZEIT_MAX_TEMP": "max_temp",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in (
            ("ZOCKZEIT_TURN_ON_URLS", "turn_on_urls"),
            ("ZOCKZEIT_TURN_OFF_URLS", "turn_off_urls"),
        ):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = [part for part in val.split(",") if part.strip()]

        config_kwargs.update(overrides)
        return cls.from_mapping(config_kwargs)

    def endpoints(self) -> EndpointSet:
        return EndpointSet(
            elapsed_url=self.elapsed_time_url,
            target_url=self.target_time_url,
            set_target_url_template=self.set_target_time_url,
            turn_on_urls=self.turn_on_urls,
            turn_off_urls=self.turn_off_urls,
            reset_url=self.reset_url,
        )

    def poll_config(self) -> PollConfig:
        return PollConfig(
            elapsed_interval_ms=int(self.elapsed_poll_interval * 1000),
            target_interval_ms=int(self.target_poll_interval * 1000),
            request_timeout_ms=int(self.request_timeout),
        )
