"""Thin async wrapper around a shared ``requests`` session."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from provider_gateway.errors import ProviderUnavailable

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise ProviderUnavailable("Provider returned invalid JSON") from exc


class HttpClient:
    """Issue HTTP requests without blocking the event loop.

    ``requests`` is synchronous, so each call runs in a worker thread. Transport
    failures surface as retryable :class:`ProviderUnavailable` errors.
    """

    def __init__(self, timeout_seconds: float = 10) -> None:
        self._timeout = timeout_seconds
        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        try:
            response = await asyncio.to_thread(
                self._session.request,
                method,
                url,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            # exception text can echo the query string, which carries the API key
            reason = type(exc).__name__
            LOGGER.warning("http transport error", extra={"reason": reason})
            raise ProviderUnavailable(f"Request failed: {reason}", retryable=True) from exc
        return HttpResponse(status_code=response.status_code, body=response.text)

    async def get(
        self, url: str, *, params: Optional[Mapping[str, Any]] = None
    ) -> HttpResponse:
        return await self.request("GET", url, params=params)

    def close(self) -> None:
        self._session.close()
