# Export useful functions and types from private modules.
from py_zipkin_sql.consumer import SpanConsumer  # noqa
from py_zipkin_sql.encoding import Annotation  # noqa
from py_zipkin_sql.encoding import AnnotationType  # noqa
from py_zipkin_sql.encoding import BinaryAnnotation  # noqa
from py_zipkin_sql.encoding import create_binary_annotation  # noqa
from py_zipkin_sql.encoding import create_endpoint  # noqa
from py_zipkin_sql.encoding import Encoding  # noqa
from py_zipkin_sql.encoding import Endpoint  # noqa
from py_zipkin_sql.encoding import Span  # noqa
from py_zipkin_sql.exception import SpanConsumerError  # noqa
from py_zipkin_sql.exception import ZipkinError  # noqa
from py_zipkin_sql.storage import SQLStorage  # noqa
