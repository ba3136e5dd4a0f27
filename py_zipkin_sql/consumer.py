import itertools
import logging
from functools import lru_cache
from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Sequence
from typing import Tuple

from sqlalchemy import Table
from sqlalchemy import UniqueConstraint
from sqlalchemy.dialects import mysql
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects import sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.dml import Insert

from py_zipkin_sql.encoding._helpers import Span
from py_zipkin_sql.exception import SpanConsumerError
from py_zipkin_sql.exception import ZipkinError
from py_zipkin_sql.projector import project_span
from py_zipkin_sql.projector import RowOperation
from py_zipkin_sql.timestamps import guess_timestamp
from py_zipkin_sql.timestamps import TimestampGuesser

log = logging.getLogger("py_zipkin_sql.consumer")

SUPPORTED_DIALECTS = ("mysql", "mariadb", "postgresql", "sqlite")


@lru_cache(maxsize=None)
def _conflict_key(table: Table) -> Tuple[Any, ...]:
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint):
            return tuple(constraint.columns)
    raise ZipkinError(f"Table {table.name} has no unique key to upsert on")


def build_insert(
    dialect_name: str, table: Table, update_columns: Tuple[str, ...]
) -> Insert:
    """Builds the insert statement for the given dialect.

    Without update columns duplicate rows are ignored, otherwise the update
    columns of the existing row are set to the values being inserted.
    """
    if dialect_name in ("mysql", "mariadb"):
        mysql_insert = mysql.insert(table)
        if not update_columns:
            return mysql_insert.prefix_with("IGNORE")
        return mysql_insert.on_duplicate_key_update(
            {column: mysql_insert.inserted[column] for column in update_columns}
        )

    if dialect_name == "postgresql":
        conflict_insert: Any = postgresql.insert(table)
    elif dialect_name == "sqlite":
        conflict_insert = sqlite.insert(table)
    else:
        raise ZipkinError(f"Unsupported dialect: {dialect_name}")

    if not update_columns:
        return conflict_insert.on_conflict_do_nothing()
    return conflict_insert.on_conflict_do_update(
        index_elements=list(_conflict_key(table)),
        set_={column: conflict_insert.excluded[column] for column in update_columns},
    )


class SpanConsumer:
    """Writes batches of spans to the spans and annotations tables.

    Every call to `accept` is a single transaction on its own connection:
    either the whole batch is stored or none of it is. Spans reported more
    than once, for example by both the client and the server side of a
    request, are merged into the existing row by the database.
    """

    def __init__(
        self,
        engine: Engine,
        has_ipv6: Callable[[], bool],
        guess: TimestampGuesser = guess_timestamp,
    ) -> None:
        """
        :param engine: engine whose pool connections are taken from.
        :param has_ipv6: returns whether ipv6 addresses can be stored. It's
            only called when a batch contains an ipv6 address.
        :param guess: timestamp used for spans that don't have an
            authoritative one.
        """
        self.engine = engine
        self.has_ipv6 = has_ipv6
        self.guess = guess
        self.dialect_name = engine.dialect.name
        if self.dialect_name not in SUPPORTED_DIALECTS:
            raise ZipkinError(f"Unsupported dialect: {self.dialect_name}")
        self._statements: Dict[Tuple[str, Tuple[str, ...]], Insert] = {}

    def accept(self, spans: Sequence[Span]) -> None:
        """Stores a batch of spans.

        :param spans: spans to store.
        :type spans: list of Span
        :raises SpanConsumerError: if the batch couldn't be stored.
        """
        if not spans:
            return

        ipv6_supported = any(map(_has_ipv6_address, spans)) and self.has_ipv6()

        operations: List[RowOperation] = []
        for span in spans:
            operations.extend(project_span(span, ipv6_supported, self.guess))

        log.debug("Writing %d spans as %d rows", len(spans), len(operations))

        try:
            with self.engine.begin() as conn:
                for statement, params in self._group_operations(operations):
                    conn.execute(statement, params)
        except SQLAlchemyError as e:
            log.error("Failed to store a batch of %d spans: %s", len(spans), e)
            raise SpanConsumerError(
                f"Failed to store a batch of {len(spans)} spans: {e}"
            ) from e

    def _group_operations(
        self, operations: List[RowOperation]
    ) -> Iterator[Tuple[Insert, List[Dict[str, Any]]]]:
        # Only consecutive operations are grouped, so rows still hit the
        # database in the order they were projected. A row whose key is
        # already in the group starts a new one: some drivers send a group
        # as a single multi-row statement, which can't touch a row twice.
        run: List[RowOperation] = []
        run_keys = set()
        for operation in operations:
            row_key = tuple(
                operation.values.get(column.name)
                for column in _conflict_key(operation.table)
            )
            if run and (operation.shape != run[0].shape or row_key in run_keys):
                yield self._statement(run[0]), [dict(op.values) for op in run]
                run, run_keys = [], set()
            run.append(operation)
            run_keys.add(row_key)
        if run:
            yield self._statement(run[0]), [dict(op.values) for op in run]

    def _statement(self, operation: RowOperation) -> Insert:
        key = (operation.table.name, operation.update_columns)
        statement = self._statements.get(key)
        if statement is None:
            statement = build_insert(
                self.dialect_name, operation.table, operation.update_columns
            )
            self._statements[key] = statement
        return statement


def _has_ipv6_address(span: Span) -> bool:
    for annotation in itertools.chain(span.annotations, span.binary_annotations):
        if annotation.endpoint is not None and annotation.endpoint.ipv6:
            return True
    return False
