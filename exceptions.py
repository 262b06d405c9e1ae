"""Typed failures raised by the order tracker core."""


class OrderTrackerError(Exception):
    """Base class for every failure the tracker reports to its callers."""


class FeedUnavailable(OrderTrackerError):
    """
    The published feed could not be fetched (transport error or non-2xx).
    Recovered by falling back to the local cache.
    """
    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class RecordNotFound(OrderTrackerError):
    """An edit targeted an order id that is not in the cache."""
    def __init__(self, record_id: str):
        super().__init__(f"Order '{record_id}' not found")
        self.record_id = record_id


class PersistenceFailure(OrderTrackerError):
    """The local store failed to read or write."""
    def __init__(self, message: str, *, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class InvalidEdit(OrderTrackerError, ValueError):
    """An edit targeted a field the user may not change, or carried an invalid status."""
