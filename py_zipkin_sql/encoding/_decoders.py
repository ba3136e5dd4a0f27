import base64
import json
import logging
import socket
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from py_zipkin_sql import thrift
from py_zipkin_sql.encoding._helpers import Annotation
from py_zipkin_sql.encoding._helpers import AnnotationType
from py_zipkin_sql.encoding._helpers import BinaryAnnotation
from py_zipkin_sql.encoding._helpers import create_binary_annotation
from py_zipkin_sql.encoding._helpers import Endpoint
from py_zipkin_sql.encoding._helpers import Span
from py_zipkin_sql.encoding._types import Encoding
from py_zipkin_sql.exception import ZipkinError
from py_zipkin_sql.util import bytes_to_ipv6
from py_zipkin_sql.util import signed_int_to_ipv4
from py_zipkin_sql.util import signed_int_to_unsigned_hex
from py_zipkin_sql.util import signed_short_to_port

log = logging.getLogger("py_zipkin_sql.encoding")


def get_decoder(encoding: Encoding) -> "IDecoder":
    """Creates decoder object for the given encoding.
    :param encoding: encoding protocol of the payloads to decode
    :type encoding: Encoding
    :return: corresponding IDecoder object
    :rtype: IDecoder
    """
    if encoding == Encoding.V1_THRIFT:
        return _V1ThriftDecoder()
    if encoding == Encoding.V1_JSON:
        return _V1JSONDecoder()
    if encoding == Encoding.V2_JSON:
        raise NotImplementedError(f"{encoding} decoding not yet implemented")
    if encoding == Encoding.V2_PROTO3:
        raise NotImplementedError(f"{encoding} decoding not yet implemented")
    raise ZipkinError(f"Unknown encoding: {encoding}")


class IDecoder:
    """Decoder interface."""

    def decode_spans(self, spans: Union[str, bytes]) -> List[Span]:
        """Decodes an encoded list of spans.
        :param spans: encoded list of spans
        :type spans: bytes
        :return: list of spans
        :rtype: list of Span
        """
        raise NotImplementedError()


def _as_bytes(value: Optional[Union[str, bytes]]) -> Optional[bytes]:
    # Older thriftpy2 releases hand binary fields back as str when they
    # happen to be valid utf-8.
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


class _V1ThriftDecoder(IDecoder):
    def decode_spans(self, spans: Union[str, bytes]) -> List[Span]:
        if not isinstance(spans, bytes):
            raise ZipkinError("V1_THRIFT payloads must be bytes.")
        thrift_spans = thrift.read_span_list(spans)
        log.debug("Decoded %d thrift spans", len(thrift_spans))
        return [self._convert_span(thrift_span) for thrift_span in thrift_spans]

    def _convert_endpoint(
        self, host: Optional["thrift.zipkinCore.Endpoint"]
    ) -> Optional[Endpoint]:
        if host is None:
            return None
        return Endpoint(
            service_name=host.service_name,
            ipv4=signed_int_to_ipv4(host.ipv4),
            ipv6=bytes_to_ipv6(_as_bytes(host.ipv6)),
            port=signed_short_to_port(host.port),
        )

    def _convert_span(self, thrift_span: "thrift.zipkinCore.Span") -> Span:
        if thrift_span.trace_id is None or thrift_span.id is None:
            raise ZipkinError("Invalid thrift span. Missing trace id or span id.")
        trace_id = signed_int_to_unsigned_hex(thrift_span.trace_id)
        if thrift_span.trace_id_high:
            trace_id = signed_int_to_unsigned_hex(thrift_span.trace_id_high) + trace_id

        parent_id = None
        if thrift_span.parent_id is not None:
            parent_id = signed_int_to_unsigned_hex(thrift_span.parent_id)

        annotations = [
            Annotation(
                value=annotation.value or "",
                timestamp=annotation.timestamp or 0,
                endpoint=self._convert_endpoint(annotation.host),
            )
            for annotation in thrift_span.annotations or []
        ]

        binary_annotations = []
        for binary_annotation in thrift_span.binary_annotations or []:
            value = _as_bytes(binary_annotation.value) or b""
            binary_annotations.append(
                BinaryAnnotation(
                    key=binary_annotation.key or "",
                    value=value,
                    annotation_type=int(binary_annotation.annotation_type or 0),
                    endpoint=self._convert_endpoint(binary_annotation.host),
                )
            )

        return Span(
            trace_id=trace_id,
            name=thrift_span.name,
            span_id=signed_int_to_unsigned_hex(thrift_span.id),
            parent_id=parent_id,
            timestamp=thrift_span.timestamp,
            duration=thrift_span.duration,
            annotations=annotations,
            binary_annotations=binary_annotations,
            debug=bool(thrift_span.debug),
        )


class _V1JSONDecoder(IDecoder):
    def decode_spans(self, spans: Union[str, bytes]) -> List[Span]:
        if isinstance(spans, bytes):
            spans = spans.decode("utf-8")
        json_spans = json.loads(spans)
        if not isinstance(json_spans, list):
            raise ZipkinError("Invalid V1_JSON payload. Expected a list of spans.")
        log.debug("Decoded %d json spans", len(json_spans))
        return [self._convert_span(json_span) for json_span in json_spans]

    def _convert_endpoint(
        self, endpoint: Optional[Dict[str, Any]]
    ) -> Optional[Endpoint]:
        if not endpoint:
            return None
        ipv4 = endpoint.get("ipv4")
        ipv6 = endpoint.get("ipv6")
        port = endpoint.get("port")

        for family, address in ((socket.AF_INET, ipv4), (socket.AF_INET6, ipv6)):
            if not address:
                continue
            try:
                socket.inet_pton(family, address)
            except (OSError, TypeError):
                raise ZipkinError(f"Invalid V1_JSON endpoint address: {address!r}")

        # ports are unsigned 16 bit, bools are ints too
        if port is not None and (
            isinstance(port, bool)
            or not isinstance(port, int)
            or not 0 <= port <= 65535
        ):
            raise ZipkinError(f"Invalid V1_JSON endpoint port: {port!r}")

        return Endpoint(
            service_name=endpoint.get("serviceName"),
            ipv4=ipv4,
            ipv6=ipv6,
            port=port,
        )

    def _convert_binary_annotation(self, raw: Dict[str, Any]) -> BinaryAnnotation:
        value = raw["value"]
        type_name = raw.get("type")
        if type_name is not None:
            try:
                annotation_type = getattr(AnnotationType, type_name)
            except AttributeError:
                raise ZipkinError(f"Unknown annotation type: {type_name}")
        elif isinstance(value, bool):
            annotation_type = AnnotationType.BOOL
        elif isinstance(value, int):
            annotation_type = AnnotationType.I64
        elif isinstance(value, float):
            annotation_type = AnnotationType.DOUBLE
        else:
            annotation_type = AnnotationType.STRING

        if int(annotation_type) == AnnotationType.BYTES:
            value = base64.b64decode(value)

        return create_binary_annotation(
            key=raw["key"],
            value=value,
            annotation_type=annotation_type,
            endpoint=self._convert_endpoint(raw.get("endpoint")),
        )

    def _convert_span(self, json_span: Dict[str, Any]) -> Span:
        try:
            return Span(
                trace_id=json_span["traceId"],
                name=json_span.get("name"),
                span_id=json_span["id"],
                parent_id=json_span.get("parentId"),
                timestamp=json_span.get("timestamp"),
                duration=json_span.get("duration"),
                annotations=[
                    Annotation(
                        value=annotation["value"],
                        timestamp=annotation["timestamp"],
                        endpoint=self._convert_endpoint(annotation.get("endpoint")),
                    )
                    for annotation in json_span.get("annotations", [])
                ],
                binary_annotations=[
                    self._convert_binary_annotation(binary_annotation)
                    for binary_annotation in json_span.get("binaryAnnotations", [])
                ],
                debug=bool(json_span.get("debug", False)),
            )
        except KeyError as e:
            raise ZipkinError(f"Invalid V1_JSON span. Missing field {e}.")
