"""Analytics error types."""


class AnalyticsError(Exception):
    """Base class for analytics failures."""


class DataFetchError(AnalyticsError):
    """A data store query failed or timed out.

    Raised instead of building a report from partially loaded data.
    """

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Failed to load {source}: {message}")


class InvalidWindowError(AnalyticsError, ValueError):
    """The requested report window is empty or inverted."""


class SupersededRequestError(AnalyticsError):
    """A newer report request for the same client replaced this one."""

    def __init__(self, request_key: str):
        self.request_key = request_key
        super().__init__(f"Report request for '{request_key}' was superseded")
