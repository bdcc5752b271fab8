"""Shared async HTTP plumbing for provider API clients."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..core.quotes.cancellation import CancellationToken
from ..core.quotes.errors import ProviderError


class ProviderHTTPClient:
    """Host-fallback request loop around `httpx.AsyncClient`.

    Hosts are tried in order. Connection errors and 404/405 responses fall
    through to the next host; any other HTTP error stops the loop.
    """

    provider_name = "provider"

    def __init__(
        self,
        base_urls: Sequence[str],
        *,
        timeout_s: float = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_urls: List[str] = [url.rstrip("/") for url in base_urls if url]
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[CancellationToken] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        if token is not None:
            token.raise_if_cancelled()
            return await token.guard(self._send(method, path, headers=headers, **kwargs))
        return await self._send(method, path, headers=headers, **kwargs)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        merged_headers = {**self._headers(), **(headers or {})}
        last_error: Optional[Exception] = None

        for index, base_url in enumerate(self.base_urls):
            try:
                async with httpx.AsyncClient(
                    base_url=base_url,
                    timeout=self.timeout_s,
                    transport=self._transport,
                ) as client:
                    response = await client.request(method, path, headers=merged_headers, **kwargs)
                    response.raise_for_status()
                    return response
            except httpx.HTTPStatusError as exc:
                # Some hosts omit certain routes
                if exc.response.status_code in (404, 405) and index < len(self.base_urls) - 1:
                    last_error = exc
                    continue
                raise self._status_error(exc) from exc
            except httpx.RequestError as exc:
                last_error = exc
                continue

        if isinstance(last_error, httpx.HTTPStatusError):
            raise self._status_error(last_error) from last_error
        if last_error is not None:
            raise ProviderError(
                f"{self.provider_name} request failed: {last_error}",
                provider=self.provider_name,
            ) from last_error
        raise ProviderError(
            f"All {self.provider_name} hosts failed without an error response",
            provider=self.provider_name,
        )

    def _status_error(self, exc: httpx.HTTPStatusError) -> ProviderError:
        response = exc.response
        detail = _error_detail(response)
        return ProviderError(
            f"{self.provider_name} returned HTTP {response.status_code}: {detail or response.reason_phrase}",
            provider=self.provider_name,
            status_code=response.status_code,
            detail=detail,
        )


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None
    if isinstance(body, dict):
        for field in ("message", "error", "detail"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    return None
