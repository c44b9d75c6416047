"""Thin synchronous wrapper over ``httpx.Client``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .errors import HttpRequestError, HttpStatusError


class HttpClient:
    """Outbound HTTP client mapping httpx failures to typed errors."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=dict(headers or {}),
            transport=transport,
        )

    def close(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request and map transport/status failures to typed errors."""
        try:
            response = self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            request_url = str(exc.request.url) if exc.request is not None else url
            raise HttpRequestError(
                message=f"HTTP request failed for {method.upper()} {request_url}",
                method=method.upper(),
                url=request_url,
                retryable=True,
                cause=exc,
            ) from exc

        if raise_for_status and response.is_error:
            status_code = response.status_code
            target = f"{method.upper()} {response.request.url}"
            raise HttpStatusError(
                message=f"HTTP {status_code} for {target}",
                method=method.upper(),
                url=str(response.request.url),
                retryable=status_code >= 500 or status_code == 429,
                status_code=status_code,
                response_body=response.text,
            )
        return response

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one POST request."""
        return self.request("POST", url, **kwargs)
