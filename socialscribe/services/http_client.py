"""Shared httpx client factory for outbound platform calls."""

from typing import Optional

import httpx

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

# Swapped for an httpx.MockTransport in tests
_transport: Optional[httpx.AsyncBaseTransport] = None


def set_transport(transport: Optional[httpx.AsyncBaseTransport]) -> None:
    global _transport
    _transport = transport


def async_client(**kwargs) -> httpx.AsyncClient:
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    if _transport is not None:
        kwargs["transport"] = _transport
    return httpx.AsyncClient(**kwargs)
