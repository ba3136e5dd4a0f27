import logging
import threading
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from py_zipkin_sql import schema

log = logging.getLogger("py_zipkin_sql.ipv6")


class HasIpv6:
    """Whether the annotations table has a column for ipv6 addresses.

    Older schemas predate `endpoint_ipv6`. The schema is inspected the first
    time `get` is called and the answer is kept for the lifetime of the
    object; concurrent first calls wait for a single inspection.
    """

    def __init__(self, engine: Engine, table_name: str = schema.annotations.name):
        self.engine = engine
        self.table_name = table_name
        self._lock = threading.Lock()
        self._value: Optional[bool] = None

    def get(self) -> bool:
        if self._value is None:
            with self._lock:
                if self._value is None:
                    self._value = self._probe()
        return self._value

    def _probe(self) -> bool:
        try:
            columns = inspect(self.engine).get_columns(self.table_name)
        except SQLAlchemyError as e:
            log.warning(
                "Couldn't inspect table %s, not storing ipv6 addresses: %s",
                self.table_name,
                e,
            )
            return False

        has_ipv6 = any(column["name"] == schema.IPV6_COLUMN for column in columns)
        if not has_ipv6:
            log.info(
                "%s has no %s column, not storing ipv6 addresses",
                self.table_name,
                schema.IPV6_COLUMN,
            )
        return has_ipv6
