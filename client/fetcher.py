"""HTTP retrieval of remote calendar feeds.

Wraps an ``httpx.AsyncClient`` shared by all requests of the service. Every
fetch carries its own timeout so the limit can change on configuration
reload without recreating the client.
"""

import logging
import re
from typing import Any

import httpx

from client.exceptions import (
    FetchConnectionError,
    FetchError,
    FetchStatusError,
    FetchTimeoutError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "ical-merge/0.1"

DEFAULT_FETCH_TIMEOUT = 30.0

_WEBCAL_SCHEMES = {
    "webcal": "http",
    "webcals": "https",
}

_SCHEME = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://")


def normalize_url(url: str) -> str:
    """Rewrite ``webcal://`` to ``http://`` and ``webcals://`` to ``https://``.

    The scheme comparison is case-insensitive. Other URLs are returned
    unchanged.
    """
    match = _SCHEME.match(url)
    if match is None:
        return url
    replacement = _WEBCAL_SCHEMES.get(match.group("scheme").lower())
    if replacement is None:
        return url
    return f"{replacement}://{url[match.end():]}"


def _raise_for_status(response: httpx.Response, url: str) -> None:
    """Raise FetchStatusError for any non-2xx response."""
    if response.is_success:
        return
    reason = response.reason_phrase or "error"
    raise FetchStatusError(
        message=f"Fetching {url} failed with {response.status_code} {reason}",
        status_code=response.status_code,
        url=url,
    )


class CalendarFetcher:
    """Asynchronous downloader for calendar feeds.

    Attributes:
        timeout: Default timeout in seconds, used when fetch() gets none.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Default timeout in seconds.
            transport: Custom transport (e.g., MockTransport for testing).
        """
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def aclose(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "CalendarFetcher":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager and close client."""
        await self.aclose()

    async def fetch(self, url: str, timeout: float | None = None) -> bytes:
        """Download one feed.

        Args:
            url: Feed address; webcal schemes are normalized first.
            timeout: Timeout in seconds for this request.

        Returns:
            The raw response body.

        Raises:
            FetchConnectionError: If the connection fails.
            FetchTimeoutError: If the request exceeds the timeout.
            FetchStatusError: If the server answers with a non-2xx status.
            FetchError: For any other transport failure.
        """
        target = normalize_url(url)
        limit = self.timeout if timeout is None else timeout
        logger.debug(f"Fetching {target} (timeout {limit}s)")

        try:
            response = await self._client.get(target, timeout=limit)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(
                message=f"Request to {target} timed out",
                url=target,
                timeout=limit,
            ) from e
        except httpx.ConnectError as e:
            raise FetchConnectionError(
                message=f"Failed to connect to {target}",
                url=target,
                cause=e,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(message=f"Request to {target} failed: {e}", url=target) from e

        _raise_for_status(response, target)
        logger.debug(f"Fetched {len(response.content)} bytes from {target}")
        return response.content
