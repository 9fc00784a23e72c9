"""Asynchronous HTTP client helper.

This module provides a wrapper around the `httpx` asynchronous client used by
the source probes and web-search providers.  It centralises default headers,
timeouts and error translation: every transport or status failure surfaces
as a :class:`~karma_osint.core.error_recovery.SourceError` so probes only
have to handle one exception family.  Requests are not retried; a failed
call is reported once and collection moves on.
"""

from __future__ import annotations

import json as jsonlib
import logging
import time
from typing import Any, Dict, Optional

import httpx

from karma_osint.core.error_recovery import (
    MalformedResponseError,
    SourceResponseError,
    SourceUnavailableError,
)


class AsyncHTTPClient:
    """A thin async HTTP client with per-call timeouts and error translation."""

    DEFAULT_USER_AGENT = "Dpt-of-Karma-OSINT/1.0 (+local)"

    def __init__(
        self,
        timeout: float = 12.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the HTTP client.

        Parameters
        ----------
        timeout : float
            Default request timeout in seconds.
        user_agent : str, optional
            User-Agent header sent with every request.
        transport : httpx.AsyncBaseTransport, optional
            Custom transport (``httpx.MockTransport`` in tests).
        """
        self._timeout = timeout
        self._user_agent = user_agent or self.DEFAULT_USER_AGENT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = logging.getLogger(self.__class__.__name__)
        self._request_count = 0
        self._total_request_time = 0.0

    async def __aenter__(self) -> "AsyncHTTPClient":
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
            follow_redirects=True,
            transport=self._transport,
        )
        self.logger.debug("HTTP client initialized (timeout=%.1fs)", self._timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            if self._request_count > 0:
                avg_time = self._total_request_time / self._request_count
                self.logger.debug(
                    "HTTP client closed (requests=%d, avg_time=%.2fms)",
                    self._request_count,
                    avg_time * 1000,
                )

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        timeout: Optional[float] = None,
        source: str = "",
    ) -> httpx.Response:
        """Make a single HTTP request.

        Raises
        ------
        RuntimeError
            If the client is not used as a context manager.
        SourceUnavailableError
            On timeouts and transport errors.
        SourceResponseError
            When the response status is not 2xx.
        """
        if self._client is None:
            raise RuntimeError("AsyncHTTPClient must be used as an async context manager")

        start_time = time.time()
        self.logger.debug("%s %s", method, url[:100])
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.TimeoutException as exc:
            self.logger.warning("Timeout on %s %s: %s", method, url[:100], exc)
            raise SourceUnavailableError(
                f"Request timed out: {exc}", source=source, url=url
            ) from exc
        except httpx.RequestError as exc:
            self.logger.warning("Request error on %s %s: %s", method, url[:100], exc)
            raise SourceUnavailableError(
                f"Request failed: {exc}", source=source, url=url
            ) from exc

        elapsed = time.time() - start_time
        self._request_count += 1
        self._total_request_time += elapsed
        self.logger.debug(
            "%s %s -> %d (%.2fms)",
            method,
            url[:100],
            response.status_code,
            elapsed * 1000,
        )

        if not response.is_success:
            raise SourceResponseError(
                response.status_code, response.text, source=source, url=url
            )
        return response

    async def get_text(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        source: str = "",
    ) -> str:
        """GET ``url`` and return the body as text."""
        merged = {"Accept": "text/plain,*/*"}
        merged.update(headers or {})
        response = await self.request(
            "GET", url, headers=merged, params=params, timeout=timeout, source=source
        )
        return response.text

    async def get_json(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        source: str = "",
    ) -> Any:
        """GET ``url`` and decode the JSON body.

        An empty body decodes to ``None``.

        Raises
        ------
        MalformedResponseError
            If the body is not valid JSON.
        """
        merged = {"Accept": "application/json"}
        merged.update(headers or {})
        response = await self.request(
            "GET", url, headers=merged, params=params, timeout=timeout, source=source
        )
        text = response.text
        if not text:
            return None
        try:
            return jsonlib.loads(text)
        except ValueError as exc:
            raise MalformedResponseError(
                f"Invalid JSON from {url[:100]}: {exc}", source=source, url=url
            ) from exc

    @property
    def stats(self) -> Dict[str, Any]:
        """Get request statistics."""
        return {
            "request_count": self._request_count,
            "total_time_ms": self._total_request_time * 1000,
            "avg_time_ms": (
                (self._total_request_time / self._request_count * 1000)
                if self._request_count > 0
                else 0
            ),
        }
