from enum import Enum


class Encoding(Enum):
    """Span encodings a payload can be detected as."""

    V1_THRIFT = "V1_THRIFT"
    V1_JSON = "V1_JSON"
    V2_JSON = "V2_JSON"
    V2_PROTO3 = "V2_PROTO3"
