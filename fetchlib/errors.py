from typing import Optional


class FetcherError(Exception):
    """Base class for everything raised by fetchlib."""


class InvalidArgument(FetcherError, ValueError):
    def __init__(self, message: str, url: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message if url is None else f"{message}: {url!r}")


class FetchFailure(FetcherError):
    """The browser session failed (crash, timeout, disconnection)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Fetch of {url} failed: {reason}")


class UnsupportedCapture(FetcherError):
    def __init__(self, header: str, value: object) -> None:
        self.header = header
        self.value_type = type(value).__name__
        super().__init__(f"Unsupported header value for {header!r}: {self.value_type}")
