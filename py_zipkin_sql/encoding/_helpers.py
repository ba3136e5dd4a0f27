import socket
import struct
from typing import Any
from typing import Iterable
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from py_zipkin_sql import thrift
from py_zipkin_sql.exception import ZipkinError


AnnotationType = thrift.zipkinCore.AnnotationType

# struct formats of the fixed size numeric binary annotation types.
_NUMERIC_FORMATS = {
    int(AnnotationType.I16): "!h",
    int(AnnotationType.I32): "!i",
    int(AnnotationType.I64): "!q",
    int(AnnotationType.DOUBLE): "!d",
}


class Endpoint(NamedTuple):
    service_name: Optional[str]
    ipv4: Optional[str]
    ipv6: Optional[str]
    port: Optional[int]


class Annotation(NamedTuple):
    """Timestamped event, such as 'cs' or 'sr'. Timestamp in microseconds."""

    value: str
    timestamp: int
    endpoint: Optional[Endpoint] = None


class BinaryAnnotation(NamedTuple):
    """Typed key/value tag. The value is always kept in its encoded form, see
    `create_binary_annotation` to build one out of a python value.
    """

    key: str
    value: bytes
    annotation_type: int
    endpoint: Optional[Endpoint] = None


class Span:
    """V1 Span, as handed over to the storage layer."""

    def __init__(
        self,
        trace_id: str,
        name: Optional[str],
        span_id: str,
        parent_id: Optional[str] = None,
        timestamp: Optional[int] = None,
        duration: Optional[int] = None,
        annotations: Optional[Iterable[Annotation]] = None,
        binary_annotations: Optional[Iterable[BinaryAnnotation]] = None,
        debug: bool = False,
    ):
        """Creates a new Span.

        :param trace_id: Trace id, 16 or 32 characters hex string.
        :type trace_id: str
        :param name: Name of the span. None is stored as an empty name.
        :type name: str
        :param span_id: Span id.
        :type span_id: str
        :param parent_id: Parent span id.
        :type parent_id: str
        :param timestamp: start timestamp in microseconds.
        :type timestamp: int
        :param duration: span duration in microseconds.
        :type duration: int
        :param annotations: Optional ordered list of Annotation.
        :type annotations: list
        :param binary_annotations: Optional ordered list of BinaryAnnotation.
        :type binary_annotations: list
        :param debug: True is a request to store this span even if it
            overrides sampling policy.
        :type debug: bool
        """
        self.trace_id = trace_id
        self.name = name or ""
        self.span_id = span_id
        self.parent_id = parent_id
        self.timestamp = timestamp
        self.duration = duration
        self.annotations: Tuple[Annotation, ...] = tuple(annotations or ())
        self.binary_annotations: Tuple[BinaryAnnotation, ...] = tuple(
            binary_annotations or ()
        )
        self.debug = debug

        for annotation in self.annotations:
            if not isinstance(annotation, Annotation):
                raise ZipkinError(
                    f"Invalid annotation {annotation}. Must be of type Annotation."
                )
            _check_endpoint(annotation.endpoint)

        for binary_annotation in self.binary_annotations:
            if not isinstance(binary_annotation, BinaryAnnotation):
                raise ZipkinError(
                    f"Invalid binary annotation {binary_annotation}. "
                    "Must be of type BinaryAnnotation."
                )
            _check_endpoint(binary_annotation.endpoint)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Span) and self.__dict__ == other.__dict__

    def __str__(self) -> str:  # pragma: no cover
        """Nicely print Span rather than just the pointer"""
        return str(self.__dict__)


def _check_endpoint(endpoint: Optional[Endpoint]) -> None:
    if endpoint is not None and not isinstance(endpoint, Endpoint):
        raise ZipkinError("Invalid endpoint value. Must be of type Endpoint.")


def create_endpoint(
    port: Optional[int] = None,
    service_name: Optional[str] = None,
    host: Optional[str] = None,
) -> Endpoint:
    """Creates a new Endpoint object.

    :param port: TCP/UDP port.
    :type port: int
    :param service_name: service name as a str.
    :type service_name: str
    :param host: ipv4 or ipv6 address of the host.
    :type host: str
    :returns: zipkin Endpoint object
    """
    ipv4 = None
    ipv6 = None

    if host:
        # Check ipv4 or ipv6.
        try:
            socket.inet_pton(socket.AF_INET, host)
            ipv4 = host
        except OSError:
            # If it's not an ipv4 address, maybe it's ipv6.
            try:
                socket.inet_pton(socket.AF_INET6, host)
                ipv6 = host
            except OSError:
                # If it's neither ipv4 or ipv6, leave both ip addresses unset.
                pass

    return Endpoint(ipv4=ipv4, ipv6=ipv6, port=port, service_name=service_name)


def create_binary_annotation(
    key: str,
    value: Any,
    annotation_type: int = AnnotationType.STRING,
    endpoint: Optional[Endpoint] = None,
) -> BinaryAnnotation:
    """Creates a BinaryAnnotation, encoding `value` the way zipkin expects
    for the given type: one byte for BOOL, big-endian for numbers, utf-8
    for STRING and untouched for BYTES.

    :param key: name of the annotation, such as 'http.uri'
    :param value: python value of the annotation
    :param annotation_type: type of annotation, such as AnnotationType.I32
    :param endpoint: endpoint that recorded the annotation
    :returns: BinaryAnnotation
    """
    annotation_type = int(annotation_type)
    if annotation_type == AnnotationType.BOOL:
        encoded = b"\x01" if value else b"\x00"
    elif annotation_type == AnnotationType.BYTES:
        encoded = bytes(value)
    elif annotation_type == AnnotationType.STRING:
        encoded = value if isinstance(value, bytes) else str(value).encode("utf-8")
    elif annotation_type in _NUMERIC_FORMATS:
        encoded = struct.pack(_NUMERIC_FORMATS[annotation_type], value)
    else:
        raise ZipkinError(f"Unknown annotation type: {annotation_type}")

    return BinaryAnnotation(
        key=key,
        value=encoded,
        annotation_type=annotation_type,
        endpoint=endpoint,
    )
