from typing import Any
from typing import Dict
from typing import List

from sqlalchemy import create_engine
from sqlalchemy import MetaData
from sqlalchemy import select
from sqlalchemy import Table
from sqlalchemy.pool import StaticPool

from py_zipkin_sql import schema
from py_zipkin_sql.storage import SQLStorage


def create_sqlite_storage(
    metadata: MetaData = schema.metadata, **kwargs: Any
) -> SQLStorage:
    """Creates a storage backed by an in-memory sqlite database, with the
    zipkin tables already created. For use in tests.

    .. code-block:: python

        storage = create_sqlite_storage()
        storage.span_consumer().accept(spans)
        assert len(fetch_rows(storage, schema.spans)) == len(spans)

    :param metadata: tables to create. Pass a different metadata to test
        against an older schema.
    :type metadata: sqlalchemy.MetaData
    :param kwargs: passed to SQLStorage.
    """
    # A single shared connection, otherwise every checkout would get a new
    # empty in-memory database.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    return SQLStorage(engine, **kwargs)


def fetch_rows(storage: SQLStorage, table: Table) -> List[Dict[str, Any]]:
    """Returns every row of the table as a list of dicts."""
    with storage.engine.connect() as conn:
        return [dict(row._mapping) for row in conn.execute(select(table))]
