"""Custom exception hierarchy for pyzockzeit."""

from __future__ import annotations

from enum import StrEnum


class ZockZeitError(Exception):
    """Base exception for all pyzockzeit errors."""


class ZockZeitConfigError(ZockZeitError):
    """Invalid or missing configuration."""


class ZockZeitStateError(ZockZeitError):
    """Accessory used outside of its start/stop lifecycle."""


class FetchErrorKind(StrEnum):
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"


class ZockZeitFetchError(ZockZeitError):
    """A single GET request failed (network, non-2xx status, timeout).

    Always recoverable. Pollers log and swallow it; commands hand it back
    to the caller that issued them.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: FetchErrorKind,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.url = url
        self.status_code = status_code
        super().__init__(message)
