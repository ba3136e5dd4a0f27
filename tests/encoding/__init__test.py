import json

import pytest

from py_zipkin_sql import Encoding
from py_zipkin_sql.encoding import decode_spans
from py_zipkin_sql.encoding import detect_span_version_and_encoding
from py_zipkin_sql.exception import ZipkinError


V1_JSON_SPANS = json.dumps(
    [
        {
            "traceId": "17133d482ba4f605",
            "id": "27133d482ba4f605",
            "name": "get_user",
            "annotations": [
                {
                    "timestamp": 1538544126115900,
                    "value": "sr",
                    "endpoint": {"serviceName": "backend", "ipv4": "10.0.0.2"},
                }
            ],
            "binaryAnnotations": [{"key": "http.path", "value": "/user"}],
        }
    ]
)


def test_detect_span_version_and_encoding_thrift(thrift_payload):
    assert detect_span_version_and_encoding(thrift_payload) == Encoding.V1_THRIFT


def test_detect_span_version_and_encoding_v1_json():
    assert detect_span_version_and_encoding(V1_JSON_SPANS) == Encoding.V1_JSON
    assert detect_span_version_and_encoding(V1_JSON_SPANS.encode()) == Encoding.V1_JSON


def test_detect_span_version_and_encoding_v2_json():
    spans = '[{"traceId": "aaa", "id": "bbb", "kind": "CLIENT"}]'
    assert detect_span_version_and_encoding(spans) == Encoding.V2_JSON


def test_detect_span_version_and_encoding_proto3():
    assert detect_span_version_and_encoding(b"\n\x8c\x01") == Encoding.V2_PROTO3


def test_detect_span_version_and_encoding_incomplete_message():
    with pytest.raises(ZipkinError):
        detect_span_version_and_encoding("[")


def test_detect_span_version_and_encoding_ambiguous_json():
    """JSON spans that don't have any v1 or v2 keyword default to V2"""
    assert (
        detect_span_version_and_encoding('[{"traceId": "aaa", "id": "bbb"}]')
        == Encoding.V2_JSON
    )


def test_detect_span_version_and_encoding_unknown_encoding():
    with pytest.raises(ZipkinError):
        detect_span_version_and_encoding("foobar")


def test_decode_spans_detects_encoding(thrift_payload):
    spans = decode_spans(thrift_payload)
    assert [span.name for span in spans] == ["inner_span", "test_span_name"]

    spans = decode_spans(V1_JSON_SPANS)
    assert [span.name for span in spans] == ["get_user"]


def test_decode_spans_with_explicit_encoding():
    spans = decode_spans(V1_JSON_SPANS, Encoding.V1_JSON)
    assert len(spans) == 1


def test_decode_spans_v2_not_supported():
    with pytest.raises(NotImplementedError):
        decode_spans('[{"traceId": "aaa", "id": "bbb", "kind": "CLIENT"}]')
