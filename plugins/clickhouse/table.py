"""
ClickHouse table: storage statistics and data editing.

Wraps a generic Relation with the ClickHouse-specific pieces:

- Statistics read lazily from system.parts in a single aggregate query and
  cached on the table object (size, rows, last modification, partition date
  bounds, engine).
- Row edits expressed as ALTER TABLE ... UPDATE / DELETE mutation batches.
"""

import logging
import threading
from datetime import datetime
from typing import List, Optional

from plugins.clickhouse import dml
from plugins.clickhouse.utils.qrylib import qry_table_stats
from plugins.common.batch import ExecuteBatch
from plugins.common.output_formatters import format_bytes
from plugins.common.relation import Attribute

logger = logging.getLogger(__name__)

CAT_STATISTICS = 'Statistics'

# (attribute, label, order, viewable, formatter)
STATISTICS_PROPERTIES = [
    ('table_size', 'Size', 20, True, format_bytes),
    ('table_rows', 'Row Count', 21, True, None),
    ('last_modify_time', 'Last Modify Time', 22, False, None),
    ('min_date', 'Min Date', 23, False, None),
    ('max_date', 'Max Date', 24, False, None),
    ('engine', 'Engine', 25, True, None),
]


class ClickHouseTable:
    """
    ClickHouse-specific behaviour attached to a Relation.

    Statistics fields stay at their defaults until read_statistics() finds a
    row for the table. table_size is None while unknown, so has_statistics()
    only turns true after a successful read. A table without parts returns no
    row and is therefore queried again on the next access.
    """

    def __init__(self, relation):
        self.relation = relation
        self._statistics_lock = threading.Lock()

        self.table_size: Optional[int] = None
        self.table_rows: int = 0
        self.last_modify_time: Optional[datetime] = None
        self.min_date: Optional[str] = None
        self.max_date: Optional[str] = None
        self.engine: Optional[str] = None

    @property
    def name(self):
        return self.relation.name

    @property
    def container_name(self):
        return self.relation.container_name

    @property
    def full_name(self):
        return self.relation.full_name

    @property
    def connector(self):
        return self.relation.connector

    def __repr__(self):
        return f"ClickHouseTable({self.full_name!r})"

    # Statistics

    def has_statistics(self) -> bool:
        return self.table_size is not None

    def get_stat_object_size(self) -> int:
        """Returns the cached size in bytes, 0 when unknown. Never queries."""
        return 0 if self.table_size is None else self.table_size

    def get_row_count(self, monitor=None) -> int:
        self.read_statistics(monitor)
        return self.table_rows

    def get_last_modify_time(self, monitor=None) -> Optional[datetime]:
        self.read_statistics(monitor)
        return self.last_modify_time

    def get_min_date(self, monitor=None) -> Optional[str]:
        self.read_statistics(monitor)
        return self.min_date

    def get_max_date(self, monitor=None) -> Optional[str]:
        self.read_statistics(monitor)
        return self.max_date

    def get_engine(self, monitor=None) -> Optional[str]:
        self.read_statistics(monitor)
        return self.engine

    def read_statistics(self, monitor=None):
        """
        Reads statistics from system.parts unless they are already cached.

        Only one thread reads at a time; others wait and then see the cached
        values. Failures are logged and leave the statistics at their defaults.
        """
        with self._statistics_lock:
            if self.has_statistics():
                return
            try:
                with self.connector.open_session(monitor, self, "Read relation statistics", meta=True) as session:
                    statement = session.prepare_statement(qry_table_stats.get_table_statistics_query(self.connector))
                    statement.set_string(0, self.container_name)
                    statement.set_string(1, self.name)
                    cursor = statement.execute_query()
                    if cursor.next():
                        self._fetch_statistics(cursor)
                    else:
                        logger.debug(f"No parts found for {self.full_name}")
            except Exception as e:
                logger.error(f"Error reading table statistics for {self.full_name}: {e}")

    def _fetch_statistics(self, cursor):
        table_size = cursor.get_long('table_size')
        table_rows = cursor.get_long('table_rows')
        last_modify_time = cursor.get_timestamp('latest_modification')
        max_date = cursor.get_string('max_date')
        min_date = cursor.get_string('min_date')
        engine = cursor.get_string('engine')

        # table_size marks the cache as loaded, so it is assigned last
        self.table_rows = table_rows
        self.last_modify_time = last_modify_time
        self.max_date = max_date
        self.min_date = min_date
        self.engine = engine
        self.table_size = table_size

    def get_stat_properties(self, monitor=None, viewable_only=False) -> List[dict]:
        """
        Returns the statistics as ordered property descriptors for display.

        Each entry has name, label, category, order, viewable, value and
        display (value passed through the property formatter).
        """
        self.read_statistics(monitor)
        properties = []
        for attr, label, order, viewable, formatter in STATISTICS_PROPERTIES:
            if viewable_only and not viewable:
                continue
            value = getattr(self, attr)
            if formatter is not None:
                display = formatter(value)
            elif value is None:
                display = '-'
            else:
                display = value.isoformat(sep=' ') if isinstance(value, datetime) else str(value)
            properties.append({
                'name': attr,
                'label': label,
                'category': CAT_STATISTICS,
                'order': order,
                'viewable': viewable,
                'value': value,
                'display': display,
            })
        return properties

    # Columns

    def read_attributes(self, monitor=None) -> List[Attribute]:
        """Reads column metadata from system.columns. Not cached."""
        attributes = []
        with self.connector.open_session(monitor, self, "Read table columns", meta=True) as session:
            statement = session.prepare_statement(qry_table_stats.get_table_columns_query(self.connector))
            statement.set_string(0, self.container_name)
            statement.set_string(1, self.name)
            cursor = statement.execute_query()
            while cursor.next():
                type_name = cursor.get_string('type') or ''
                default_kind = cursor.get_string('default_kind') or ''
                attributes.append(Attribute(
                    name=cursor.get_string('name'),
                    type_name=type_name,
                    ordinal_position=cursor.get_long('position'),
                    nullable=type_name.startswith('Nullable('),
                    is_in_primary_key=cursor.get_long('is_in_primary_key') == 1,
                    default_kind=default_kind,
                    hidden=default_kind.upper() == 'ALIAS',
                    comment=cursor.get_string('comment'),
                ))
        return attributes

    def get_key_attributes(self, monitor=None) -> List[Attribute]:
        """Returns the primary key columns, used as row identity for edits."""
        return [a for a in self.read_attributes(monitor) if a.is_in_primary_key]

    # Data editing

    def update_data(self, session, update_attributes, key_attributes, keys_receiver=None, source=None) -> ExecuteBatch:
        """
        Creates an UPDATE mutation batch.

        Rows added to the batch hold update values followed by key values, in
        the order of update_attributes + key_attributes.

        Raises:
            ValueError: If nothing is updatable or no key attribute is given
        """
        update_attributes = list(update_attributes)
        key_attributes = list(key_attributes)
        # Validates the attribute lists up front
        dml.build_update_query(self.relation, update_attributes, key_attributes)
        builder = dml.update_statement_builder(self.relation, update_attributes, key_attributes, source)
        return ExecuteBatch(update_attributes + key_attributes, builder, keys_receiver)

    def delete_data(self, session, key_attributes, source=None) -> ExecuteBatch:
        """
        Creates a DELETE mutation batch. Rows hold key values only.

        Raises:
            ValueError: If no key attribute is given
        """
        key_attributes = list(key_attributes)
        dml.build_delete_query(self.relation, key_attributes)
        builder = dml.delete_statement_builder(self.relation, key_attributes, source)
        return ExecuteBatch(key_attributes, builder)
