"""Exception hierarchy for fetching and decoding remote calendar feeds.

These errors never reach an HTTP caller. The source resolver catches them
and turns each into one SourceError entry of the merge result, so a single
broken feed degrades a calendar instead of failing it.

Exception Hierarchy:
    SourceFetchError (base)
    ├── FetchError - The feed could not be downloaded
    │   ├── FetchConnectionError - Network/connection failures
    │   ├── FetchTimeoutError - Request exceeded the fetch timeout
    │   └── FetchStatusError - Server answered with a non-2xx status
    └── ParseError - The downloaded body is not a valid iCalendar document

Example:
    Catching all problems with one source::

        try:
            body = await fetcher.fetch(url, timeout=30.0)
            events = parse_events(body)
        except SourceFetchError as e:
            errors.append(SourceError(source=url, message=str(e)))
"""


class SourceFetchError(Exception):
    """Base exception for all feed retrieval errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class FetchError(SourceFetchError):
    """The feed could not be downloaded.

    Attributes:
        message: Human-readable error description.
        url: The URL that was requested.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            url: The URL that was requested.
        """
        self.url = url
        super().__init__(message)


class FetchConnectionError(FetchError):
    """Failed to connect to the feed's host.

    Attributes:
        cause: The underlying transport exception.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            url: The URL that failed to connect.
            cause: The underlying exception that caused the failure.
        """
        self.cause = cause
        super().__init__(message, url=url)


class FetchTimeoutError(FetchError):
    """The request took longer than the fetch timeout.

    Attributes:
        timeout: The timeout value in seconds.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            url: The URL that timed out.
            timeout: The timeout value in seconds.
        """
        self.timeout = timeout
        super().__init__(message, url=url)

    def __str__(self) -> str:
        """Return string representation including timeout if available."""
        if self.timeout is not None:
            return f"{self.message} (timeout: {self.timeout}s)"
        return self.message


class FetchStatusError(FetchError):
    """The server answered with a non-success status code.

    Attributes:
        status_code: HTTP status code from the server.
    """

    def __init__(self, message: str, status_code: int, url: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code from the server.
            url: The URL that was requested.
        """
        self.status_code = status_code
        super().__init__(message, url=url)

    def __str__(self) -> str:
        """Return string representation including status code."""
        return f"[HTTP {self.status_code}] {self.message}"


class ParseError(SourceFetchError):
    """The body could not be decoded as an iCalendar document."""
