"""HTTP client driver using httpx.AsyncClient.

Provides async HTTP calls with connection pooling, per-request timeouts and
automatic JSON parsing. The invoker uses it to reach model endpoints.
"""

from __future__ import annotations

from typing import Any

import httpx

from modelmesh.kernel.exceptions import HttpClientError
from modelmesh.kernel.logging import get_logger

logger = get_logger(__name__)


class HttpClientDriver:
    """Async HTTP driver built on httpx.AsyncClient.

    Parameters
    ----------
    timeout : float
        Default request timeout in seconds (default: 30.0).
    headers : dict[str, str] | None
        Default headers included in every request.
    follow_redirects : bool
        Whether to follow HTTP redirects (default: True).
    raise_for_status : bool
        If True, raise :class:`HttpClientError` on non-2xx responses
        (default: True).

    Examples
    --------
    Basic usage::

        http = HttpClientDriver()
        result = await http.apost(
            "https://models.example.com/sentiment",
            json={"text": "great"},
            headers={"Authorization": "Bearer sk-..."},
        )
        print(result["status_code"], result["body"])
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        follow_redirects: bool = True,
        raise_for_status: bool = True,
    ) -> None:
        self._timeout = timeout
        self._default_headers = {"Content-Type": "application/json", **(headers or {})}
        self._follow_redirects = follow_redirects
        self._raise_for_status = raise_for_status
        self._client: httpx.AsyncClient | None = None
        # Hook for testing: inject a custom transport
        self._transport: httpx.AsyncBaseTransport | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx client on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "timeout": self._timeout,
                "headers": self._default_headers,
                "follow_redirects": self._follow_redirects,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    def _merge_headers(self, headers: dict[str, str] | None) -> dict[str, str] | None:
        if not headers:
            return None
        return {**self._default_headers, **headers}

    def _parse_response(self, response: httpx.Response) -> dict[str, Any]:
        """Parse an httpx response into ``{"status_code", "headers", "body", "json"}``.

        The body is parsed JSON when the content type says JSON and parsing
        succeeds, raw text otherwise. ``json`` tells which of the two it is,
        since a JSON document may itself be a string.
        """
        content_type = response.headers.get("content-type", "")
        body: Any
        parsed = False
        if "application/json" in content_type:
            try:
                body = response.json()
                parsed = True
            except ValueError:
                body = response.text
        else:
            body = response.text

        return {
            "status_code": response.status_code,
            "headers": dict(response.headers),
            "body": body,
            "json": parsed,
        }

    def _check_status(self, result: dict[str, Any]) -> dict[str, Any]:
        if self._raise_for_status:
            status = result["status_code"]
            if status < 200 or status >= 300:
                raise HttpClientError(
                    status_code=status,
                    body=result["body"],
                    message=f"HTTP {status}: {result['body']}",
                )
        return result

    async def aget(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Make an async GET request.

        Parameters
        ----------
        url : str
            Absolute URL.
        headers : dict[str, str] | None
            Optional per-request headers.
        timeout : float | None
            Per-request timeout in seconds, overriding the default.
        """
        client = self._get_client()
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await client.get(url, headers=self._merge_headers(headers), **kwargs)
        result = self._parse_response(response)
        return self._check_status(result)

    async def apost(
        self,
        url: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Make an async POST request with a JSON body.

        Parameters
        ----------
        url : str
            Absolute URL.
        json : Any
            JSON-serializable request body.
        headers : dict[str, str] | None
            Optional per-request headers.
        timeout : float | None
            Per-request timeout in seconds, overriding the default.

        Returns
        -------
        dict[str, Any]
            ``{"status_code": int, "headers": dict, "body": Any}``
        """
        client = self._get_client()
        if timeout is not None:
            kwargs["timeout"] = timeout
        logger.trace("POST {url}", url=url)
        response = await client.post(
            url, json=json, headers=self._merge_headers(headers), **kwargs
        )
        result = self._parse_response(response)
        return self._check_status(result)

    async def aclose(self) -> None:
        """Close the underlying httpx client and release pooled connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClientDriver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
