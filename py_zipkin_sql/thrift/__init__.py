import os
import struct
from typing import List
from typing import TYPE_CHECKING

import thriftpy2
from thriftpy2.protocol import TBinaryProtocol
from thriftpy2.protocol.binary import read_list_begin
from thriftpy2.protocol.binary import write_list_begin
from thriftpy2.thrift import TException
from thriftpy2.thrift import TType
from thriftpy2.transport import TMemoryBuffer

from py_zipkin_sql.exception import ZipkinError


thrift_filepath = os.path.join(os.path.dirname(__file__), "zipkinCore.thrift")

# this is an extremely weird pattern, but since zipkinCore isn't a "real"
# module, but the .pyi file pretends it is, we can't import it for real but we
# can during type checking. Hence, we end up with this weird pattern.
if TYPE_CHECKING:  # pragma: no cover
    from . import zipkinCore
else:
    # load this as `zipkinCore` so that thrift-pyi generation matches
    zipkinCore = thriftpy2.load(thrift_filepath, module_name="zipkinCore_thrift")

LIST_HEADER_SIZE = 5  # size in bytes of the encoded list header

# Value of annotations written by instrumented clients, all the rows in
# the annotations table that aren't a BinaryAnnotation carry this type.
ANNOTATION_TYPE_NONE = -1


def span_to_bytes(thrift_span: "zipkinCore.Span") -> bytes:
    """
    Returns a TBinaryProtocol encoded Thrift span.

    :param thrift_span: thrift object to encode.
    :returns: thrift object in TBinaryProtocol format bytes.
    """
    transport = TMemoryBuffer()
    protocol = TBinaryProtocol(transport)
    # this type ignore is necessary because thrift-pyi is not complete in its
    # type annotations
    thrift_span.write(protocol)  # type: ignore[attr-defined]

    return bytes(transport.getvalue())


def encode_span_list(thrift_spans: List["zipkinCore.Span"]) -> bytes:
    """
    Returns a TBinaryProtocol encoded list of Thrift spans. This is the
    format used by the v1 thrift collectors.

    :param thrift_spans: list of zipkinCore.Span to encode.
    :returns: binary object representing the encoded list.
    """
    transport = TMemoryBuffer()
    write_list_begin(transport, TType.STRUCT, len(thrift_spans))
    for thrift_span in thrift_spans:
        transport.write(span_to_bytes(thrift_span))

    return bytes(transport.getvalue())


def read_span_list(payload: bytes) -> List["zipkinCore.Span"]:
    """
    Reads a TBinaryProtocol encoded list of Thrift spans.

    :param payload: encoded list, as produced by `encode_span_list`.
    :returns: list of zipkinCore.Span
    """
    if len(payload) < LIST_HEADER_SIZE:
        raise ZipkinError("Invalid thrift payload. Message too short.")

    transport = TMemoryBuffer(payload)
    elem_type, size = read_list_begin(transport)
    if elem_type != TType.STRUCT:
        raise ZipkinError(f"Invalid thrift payload. Unexpected list type {elem_type}.")

    protocol = TBinaryProtocol(transport)
    thrift_spans = []
    try:
        for _ in range(size):
            thrift_span = zipkinCore.Span()
            protocol.read_struct(thrift_span)  # type: ignore[attr-defined]
            thrift_spans.append(thrift_span)
    except (TException, EOFError, struct.error, ValueError) as e:
        raise ZipkinError(f"Invalid thrift payload. {e}") from e
    return thrift_spans
