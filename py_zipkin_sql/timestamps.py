from typing import Callable
from typing import Optional

from py_zipkin_sql import thrift
from py_zipkin_sql.encoding._helpers import Span


TimestampGuesser = Callable[[Span], Optional[int]]


def authoritative_timestamp(span: Span) -> Optional[int]:
    """Returns the timestamp we can trust for this span, if any.

    That's the span's own timestamp or, when the span doesn't have one, the
    one of its first client send annotation. Annotations are scanned in the
    order they were reported.

    When performing updates, an authoritative timestamp must never be
    overwritten with a guess.

    :param span: span to inspect.
    :returns: timestamp in microseconds, or None
    """
    if span.timestamp is not None:
        return span.timestamp
    for annotation in span.annotations:
        if annotation.value == thrift.zipkinCore.CLIENT_SEND:
            return annotation.timestamp
    return None


def guess_timestamp(span: Span) -> Optional[int]:
    """Best effort start timestamp of a span.

    Falls back to the earliest annotation when the span has no timestamp
    of its own. Only meant to give a row a timestamp on first insert.
    """
    if span.timestamp is not None or not span.annotations:
        return span.timestamp
    return min(annotation.timestamp for annotation in span.annotations)
