"""Helpers for safe logging of configured URLs.

Device URLs are pre-configured by the user and frequently carry secrets,
either as ``user:password@host`` userinfo or as query parameters
(``?token=...``).  Everything that logs a URL goes through
:func:`redact_url` first.
"""

from __future__ import annotations

from urllib.parse import unquote, urlsplit, urlunsplit

_REDACTED = "<redacted>"

_SENSITIVE_QUERY_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "pass",
        "pwd",
        "token",
        "key",
        "apikey",
        "api_key",
        "secret",
        "auth",
        "sig",
        "signature",
    }
)


def _redact_query(query: str) -> str:
    if not query:
        return query
    parts: list[str] = []
    for item in query.split("&"):
        name, sep, _value = item.partition("=")
        if sep and unquote(name).lower() in _SENSITIVE_QUERY_KEYS:
            parts.append(f"{name}={_REDACTED}")
        else:
            parts.append(item)
    return "&".join(parts)


def redact_url(url: str) -> str:
    """Return *url* with userinfo passwords and sensitive query values masked.

    The rest of the URL (including the ``{value}`` placeholder of a template)
    is kept verbatim so logs still identify the endpoint.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"

    netloc = parts.netloc
    userinfo, at, host = netloc.rpartition("@")
    if at and ":" in userinfo:
        user = userinfo.split(":", 1)[0]
        netloc = f"{user}:{_REDACTED}@{host}"

    return urlunsplit((parts.scheme, netloc, parts.path, _redact_query(parts.query), parts.fragment))
