"""Error taxonomy for identity resolution and fact generation."""


class BrandAnalyticsError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(BrandAnalyticsError):
    """A mention cannot be resolved (blank name, nothing left after normalization).

    The mention is skipped; the rest of the batch continues.
    """


class TransientStoreError(BrandAnalyticsError):
    """The durable store is unreachable or timed out.

    Surfaced to the job so it is retried at the queue level.
    """


class BatchCardinalityMismatch(TransientStoreError):
    """A batched call returned a different number of results than requested."""

    def __init__(self, operation: str, expected: int, actual: int):
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(f"{operation}: expected {expected} results, got {actual}")
