class ZipkinError(Exception):
    """Custom error to be raised on Zipkin exceptions."""


class SpanConsumerError(ZipkinError):
    """Raised when a batch of spans couldn't be written to the database.

    The whole batch is rolled back, none of its spans should be considered
    stored. The underlying database error is available as `__cause__`.
    """
