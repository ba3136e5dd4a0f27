import pytest

from py_zipkin_sql.encoding import Annotation
from py_zipkin_sql.encoding import AnnotationType
from py_zipkin_sql.encoding import create_binary_annotation
from py_zipkin_sql.encoding import Endpoint
from py_zipkin_sql.encoding import Span
from py_zipkin_sql.testing import create_sqlite_storage


# What py_zipkin 1.x emits for a client span with a local child span, a
# "some_key" tag and a server address annotation, encoded as V1_THRIFT.
PY_ZIPKIN_V1_THRIFT_PAYLOAD = (
    b"\x0c\x00\x00\x00\x02\n\x00\x01\xb5ZX\x14\x81.\x07\xfe\x0b\x00\x03\x00"
    + b"\x00\x00\ninner_span\n\x00\x04\xc6\xcd\x0c\x1fZ\xb0_\xd1\n\x00\x05BM"
    + b"\xb5\x02p\xed\x8e\xb1\x0f\x00\x06\x0c\x00\x00\x00\x01\n\x00\x01\x00"
    + b"\x05wL8\x1b\xc0<\x0b\x00\x02\x00\x00\x00\x02ws\x0c\x00\x03\x08\x00"
    + b"\x01\n\x00\x00\x00\x06\x00\x02\x1f\x90\x0b\x00\x03\x00\x00\x00\x11"
    + b"test_service_name\x00\x00\x0f\x00\x08\x0c\x00\x00\x00\x00\x02\x00\t"
    + b"\x00\n\x00\n\x00\x05wL8\x1b\xc0<\n\x00\x0b\x00\x00\x00\x00\x00LK@\x00"
    + b"\n\x00\x01\xb5ZX\x14\x81.\x07\xfe\x0b\x00\x03\x00\x00\x00\x0e"
    + b"test_span_name\n\x00\x04BM\xb5\x02p\xed\x8e\xb1\n\x00\x05\xa1kn\xd3"
    + b"\x0cA\xba\xbd\x0f\x00\x06\x0c\x00\x00\x00\x02\n\x00\x01\x00\x05wL8"
    + b"\x1b\xc0<\x0b\x00\x02\x00\x00\x00\x02cs\x0c\x00\x03\x08\x00\x01\n\x00"
    + b"\x00\x00\x06\x00\x02\x1f\x90\x0b\x00\x03\x00\x00\x00\x11"
    + b"test_service_name\x00\x00\n\x00\x01\x00\x05wL8\xb4V\xbc\x0b\x00\x02"
    + b"\x00\x00\x00\x02cr\x0c\x00\x03\x08\x00\x01\n\x00\x00\x00\x06\x00\x02"
    + b"\x1f\x90\x0b\x00\x03\x00\x00\x00\x11test_service_name\x00\x00\x0f\x00"
    + b"\x08\x0c\x00\x00\x00\x02\x0b\x00\x01\x00\x00\x00\x08some_key\x0b\x00"
    + b"\x02\x00\x00\x00\nsome_value\x08\x00\x03\x00\x00\x00\x06\x0c\x00\x04"
    + b"\x08\x00\x01\n\x00\x00\x00\x06\x00\x02\x1f\x90\x0b\x00\x03\x00\x00"
    + b"\x00\x11test_service_name\x00\x00\x0b\x00\x01\x00\x00\x00\x02sa\x0b"
    + b"\x00\x02\x00\x00\x00\x01\x01\x08\x00\x03\x00\x00\x00\x00\x0c\x00\x04"
    + b'\x08\x00\x01\x00\x00\x00\x00\x06\x00\x02"\xb8\x0b\x00\x03\x00\x00\x00'
    + b"\nsa_service\x0b\x00\x04\x00\x00\x00\x10 \x01\r\xb8\x85\xa3\x00\x00"
    + b"\x00\x00\x8a.\x03ps4\x00\x00\x02\x00\t\x00\x00"
)

# 2018-10-03T05:22:06.115900Z
TS = 1538544126115900


@pytest.fixture
def thrift_payload():
    return PY_ZIPKIN_V1_THRIFT_PAYLOAD


@pytest.fixture
def client_endpoint():
    return Endpoint(
        service_name="frontend",
        ipv4="10.0.0.1",
        ipv6="2001:db8::1",
        port=8080,
    )


@pytest.fixture
def server_endpoint():
    return Endpoint(service_name="backend", ipv4="10.0.0.2", ipv6=None, port=9411)


@pytest.fixture
def client_span(client_endpoint):
    """Client side report of an rpc: no span timestamp, but a client send."""
    return Span(
        trace_id="17133d482ba4f605",
        name="get_user",
        span_id="27133d482ba4f605",
        parent_id="37133d482ba4f605",
        duration=500,
        annotations=[
            Annotation("cs", TS, client_endpoint),
            Annotation("cr", TS + 500, client_endpoint),
        ],
        binary_annotations=[
            create_binary_annotation("http.path", "/user", endpoint=client_endpoint),
            create_binary_annotation(
                "http.status_code", 200, AnnotationType.I32, client_endpoint
            ),
        ],
    )


@pytest.fixture
def server_span(server_endpoint):
    """Server side report of the same rpc: only a guessed timestamp."""
    return Span(
        trace_id="17133d482ba4f605",
        name="unknown",
        span_id="27133d482ba4f605",
        parent_id="37133d482ba4f605",
        annotations=[
            Annotation("sr", TS + 100, server_endpoint),
            Annotation("ss", TS + 400, server_endpoint),
        ],
    )


@pytest.fixture
def storage():
    storage = create_sqlite_storage()
    yield storage
    storage.close()


@pytest.fixture
def consumer(storage):
    return storage.span_consumer()
