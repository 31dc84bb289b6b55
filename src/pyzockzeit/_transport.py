"""HTTP transport: one bounded GET per call, trimmed text body or a typed failure."""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from pyzockzeit._constants import USER_AGENT
from pyzockzeit._redact import redact_url
from pyzockzeit.exceptions import FetchErrorKind, ZockZeitFetchError

_logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Structural fetch interface used by pollers and commands.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpFetcher`) concrete.
    """

    async def fetch(self, url: str, timeout: float) -> str:
        ...


class HttpFetcher:
    """GET-only fetcher on top of a shared :class:`aiohttp.ClientSession`.

    No retries happen here; callers decide what a failure means.
    """

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def fetch(self, url: str, timeout: float) -> str:
        """Issue one GET and return the stripped body.

        Raises
        ------
        ZockZeitFetchError
            ``kind`` is ``HTTP_STATUS`` for a non-2xx reply, ``TIMEOUT`` when no
            complete response arrived within *timeout* seconds, ``NETWORK``
            for everything else that goes wrong on the wire.
        """
        safe_url = redact_url(url)
        _logger.debug("GET %s", safe_url)

        try:
            async with self._http.get(
                url,
                timeout=aiohttp.ClientTimeout(total=timeout),
                headers={"user-agent": USER_AGENT},
            ) as resp:
                if not 200 <= resp.status < 300:
                    message = f"HTTP {resp.status}"
                    if resp.reason:
                        message = f"{message}: {resp.reason}"
                    raise ZockZeitFetchError(
                        message,
                        kind=FetchErrorKind.HTTP_STATUS,
                        url=safe_url,
                        status_code=resp.status,
                    )
                text = await resp.text(errors="replace")
        except ZockZeitFetchError:
            raise
        except TimeoutError as exc:
            raise ZockZeitFetchError(
                f"Request timeout after {int(timeout * 1000)}ms",
                kind=FetchErrorKind.TIMEOUT,
                url=safe_url,
            ) from exc
        except aiohttp.ClientError as exc:
            raise ZockZeitFetchError(
                f"Request to {safe_url} failed: {exc}",
                kind=FetchErrorKind.NETWORK,
                url=safe_url,
            ) from exc

        return text.strip()
