"""Ingestion layer.

This package contains the periodic pollers that fetch elapsed/target minutes
from the device and the normalization that turns raw bodies into bounded
measurements before they reach the state store.
"""

__all__: list[str] = []
