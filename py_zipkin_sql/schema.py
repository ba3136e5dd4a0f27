"""Tables the span consumer writes to.

The schema is expected to exist already, these definitions only describe it
so that statements can be built against it. `metadata.create_all` is there
for tests and local setups.
"""
from sqlalchemy import BigInteger
from sqlalchemy import Boolean
from sqlalchemy import Column
from sqlalchemy import Integer
from sqlalchemy import LargeBinary
from sqlalchemy import MetaData
from sqlalchemy import SmallInteger
from sqlalchemy import String
from sqlalchemy import Table
from sqlalchemy import UniqueConstraint

metadata = MetaData()

spans = Table(
    "spans",
    metadata,
    Column("trace_id", BigInteger, nullable=False),
    Column("id", BigInteger, nullable=False),
    Column("name", String(255), nullable=False),
    Column("parent_id", BigInteger),
    Column("debug", Boolean),
    Column("start_ts", BigInteger),  # microseconds since epoch
    Column("duration", BigInteger),  # microseconds
    UniqueConstraint("trace_id", "id", name="uq_spans_trace_id_id"),
)

# a_type is -1 for annotations, the BinaryAnnotation type otherwise.
annotations = Table(
    "annotations",
    metadata,
    Column("trace_id", BigInteger, nullable=False),
    Column("span_id", BigInteger, nullable=False),
    Column("a_key", String(255), nullable=False),
    Column("a_value", LargeBinary),
    Column("a_type", Integer, nullable=False),
    Column("a_timestamp", BigInteger),
    Column("endpoint_ipv4", Integer),
    Column("endpoint_ipv6", LargeBinary(16)),
    Column("endpoint_port", SmallInteger),
    Column("endpoint_service_name", String(255)),
    UniqueConstraint(
        "trace_id",
        "span_id",
        "a_key",
        "a_timestamp",
        name="uq_annotations_key_timestamp",
    ),
)

SPAN_KEY = ("trace_id", "id")
IPV6_COLUMN = "endpoint_ipv6"
