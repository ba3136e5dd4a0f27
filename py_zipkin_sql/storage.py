import logging
from typing import Any
from typing import Callable
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from py_zipkin_sql import schema
from py_zipkin_sql.consumer import SpanConsumer
from py_zipkin_sql.exception import ZipkinError
from py_zipkin_sql.ipv6 import HasIpv6
from py_zipkin_sql.timestamps import guess_timestamp
from py_zipkin_sql.timestamps import TimestampGuesser

log = logging.getLogger("py_zipkin_sql.storage")


class SQLStorage:
    """Entry point of the library: holds the engine and the settings shared
    by every span consumer.

    .. code-block:: python

        storage = SQLStorage.from_url('mysql+pymysql://zipkin@localhost/zipkin')
        consumer = storage.span_consumer()
        consumer.accept(spans)
    """

    def __init__(
        self,
        engine: Engine,
        guess: TimestampGuesser = guess_timestamp,
        has_ipv6: Optional[bool] = None,
    ) -> None:
        """
        :param engine: SQLAlchemy engine of the zipkin database.
        :type engine: sqlalchemy.engine.Engine
        :param guess: timestamp used for spans that don't have an
            authoritative one.
        :type guess: callable
        :param has_ipv6: whether the annotations table can store ipv6
            addresses. Defaults to None, which inspects the schema the first
            time an ipv6 address needs to be written.
        :type has_ipv6: bool
        """
        self.engine = engine
        self.guess = guess
        self._has_ipv6: Callable[[], bool]
        if has_ipv6 is None:
            self._has_ipv6 = HasIpv6(engine).get
        else:
            self._has_ipv6 = lambda: has_ipv6

    @classmethod
    def from_url(
        cls,
        url: str,
        guess: TimestampGuesser = guess_timestamp,
        has_ipv6: Optional[bool] = None,
        **engine_kwargs: Any,
    ) -> "SQLStorage":
        """Creates a storage and its engine, extra kwargs go to
        `sqlalchemy.create_engine`.
        """
        return cls(create_engine(url, **engine_kwargs), guess, has_ipv6)

    def has_ipv6(self) -> bool:
        return self._has_ipv6()

    def span_consumer(self) -> SpanConsumer:
        return SpanConsumer(self.engine, self._has_ipv6, self.guess)

    def check(self) -> None:
        """Makes sure the tables exist and can be read.

        :raises ZipkinError: if the schema can't be used.
        """
        try:
            with self.engine.connect() as conn:
                for table in (schema.spans, schema.annotations):
                    conn.execute(select(table.c.trace_id).limit(1)).fetchall()
        except SQLAlchemyError as e:
            log.error("Zipkin schema validation failed: %s", e)
            raise ZipkinError(f"Zipkin schema isn't usable: {e}") from e

    def close(self) -> None:
        """Closes every pooled connection of the engine."""
        self.engine.dispose()
