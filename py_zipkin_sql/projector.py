from typing import Any
from typing import Callable
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from sqlalchemy import Table
from typing_extensions import TypedDict

from py_zipkin_sql import schema
from py_zipkin_sql import thrift
from py_zipkin_sql.encoding._helpers import Endpoint
from py_zipkin_sql.encoding._helpers import Span
from py_zipkin_sql.timestamps import authoritative_timestamp
from py_zipkin_sql.timestamps import guess_timestamp
from py_zipkin_sql.timestamps import TimestampGuesser
from py_zipkin_sql.util import ipv4_to_signed_int
from py_zipkin_sql.util import ipv6_to_bytes
from py_zipkin_sql.util import port_to_signed_short
from py_zipkin_sql.util import trace_id_to_signed_int
from py_zipkin_sql.util import unsigned_hex_to_signed_int

UNKNOWN_NAME = "unknown"


class SpanRow(TypedDict):
    trace_id: int
    id: int
    parent_id: Optional[int]
    name: str
    debug: bool
    start_ts: Optional[int]
    duration: Optional[int]


class AnnotationRow(TypedDict, total=False):
    trace_id: int
    span_id: int
    a_key: str
    a_value: Optional[bytes]
    a_type: int
    a_timestamp: Optional[int]
    endpoint_service_name: Optional[str]
    endpoint_ipv4: Optional[int]
    endpoint_ipv6: bytes
    endpoint_port: Optional[int]


class RowOperation(NamedTuple):
    """A single insert. When the row already exists, `update_columns` are
    overwritten with the values of this insert; no update columns means the
    insert is ignored.
    """

    table: Table
    values: Mapping[str, Any]
    update_columns: Tuple[str, ...] = ()

    @property
    def shape(self) -> Tuple[str, Tuple[str, ...], Tuple[str, ...]]:
        """Operations with the same shape share the same statement."""
        return (self.table.name, tuple(self.values), self.update_columns)


class MergeRule(NamedTuple):
    column: str
    applies: Callable[[Span, Optional[int]], bool]


# Evaluated in order against the span and its authoritative timestamp. A
# column is only merged into an existing row when its rule applies.
SPAN_MERGE_RULES: Tuple[MergeRule, ...] = (
    # never replace a real name with an unknown one
    MergeRule("name", lambda span, authoritative: span.name not in ("", UNKNOWN_NAME)),
    # a guessed timestamp must not clobber whatever is already stored
    MergeRule("start_ts", lambda span, authoritative: authoritative is not None),
    MergeRule("duration", lambda span, authoritative: span.duration is not None),
)


def _endpoint_values(
    endpoint: Optional[Endpoint], ipv6_supported: bool
) -> AnnotationRow:
    if endpoint is None:
        return {}
    values: AnnotationRow = {
        "endpoint_service_name": endpoint.service_name,
        "endpoint_ipv4": ipv4_to_signed_int(endpoint.ipv4),
        "endpoint_port": port_to_signed_short(endpoint.port),
    }
    # The column may not exist at all, so it's left out rather than nulled.
    if ipv6_supported and endpoint.ipv6:
        ipv6 = ipv6_to_bytes(endpoint.ipv6)
        assert ipv6 is not None
        values["endpoint_ipv6"] = ipv6
    return values


def project_span(
    span: Span,
    ipv6_supported: bool,
    guess: TimestampGuesser = guess_timestamp,
) -> List[RowOperation]:
    """Maps a span to the row operations needed to store it.

    The first operation upserts the span row, the next ones insert one
    annotations row per annotation and binary annotation, ignoring rows
    that are already there.

    :param span: span to store.
    :param ipv6_supported: whether the annotations table can store ipv6
        addresses.
    :param guess: fallback for spans without an authoritative timestamp.
    :returns: list of RowOperation
    """
    authoritative = authoritative_timestamp(span)
    timestamp = authoritative if authoritative is not None else guess(span)

    trace_id = trace_id_to_signed_int(span.trace_id)
    span_id = unsigned_hex_to_signed_int(span.span_id)

    span_row: SpanRow = {
        "trace_id": trace_id,
        "id": span_id,
        "parent_id": (
            unsigned_hex_to_signed_int(span.parent_id) if span.parent_id else None
        ),
        "name": span.name,
        "debug": span.debug,
        "start_ts": timestamp,
        "duration": span.duration,
    }
    update_columns = tuple(
        rule.column for rule in SPAN_MERGE_RULES if rule.applies(span, authoritative)
    )
    operations = [RowOperation(schema.spans, span_row, update_columns)]

    for annotation in span.annotations:
        row: AnnotationRow = {
            "trace_id": trace_id,
            "span_id": span_id,
            "a_key": annotation.value,
            "a_value": None,
            "a_type": thrift.ANNOTATION_TYPE_NONE,
            "a_timestamp": annotation.timestamp,
        }
        row.update(_endpoint_values(annotation.endpoint, ipv6_supported))
        operations.append(RowOperation(schema.annotations, row))

    # Binary annotations aren't timestamped, they get the span's timestamp.
    for binary_annotation in span.binary_annotations:
        row = {
            "trace_id": trace_id,
            "span_id": span_id,
            "a_key": binary_annotation.key,
            "a_value": binary_annotation.value,
            "a_type": int(binary_annotation.annotation_type),
            "a_timestamp": timestamp,
        }
        row.update(_endpoint_values(binary_annotation.endpoint, ipv6_supported))
        operations.append(RowOperation(schema.annotations, row))

    return operations
