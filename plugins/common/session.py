"""
Execution sessions, prepared statements and row cursors.

A session is a short-lived, scoped handle on a connector opened for one
purpose ("Read relation statistics", "Update rows", ...). Statements prepared
through a session use positional '?' markers; values are bound by index and
rendered into the driver's client-side binding format on execution.

Example:
    with connector.open_session(monitor, table, "Read relation statistics", meta=True) as session:
        stmt = session.prepare_statement("SELECT count() FROM system.parts WHERE table=?")
        stmt.set_string(0, "events")
        cursor = stmt.execute_query()
        while cursor.next():
            print(cursor.get_long(0))
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence

logger = logging.getLogger(__name__)

STATEMENT_QUERY = 'query'


def render_positional_query(query):
    """
    Converts '?' markers into '%s' outside of quoted text.

    Literal '%' characters are doubled so the driver's %-style binding leaves
    them intact. Text inside '...', "..." and `...` is never treated as a marker.
    A query without markers is returned unchanged.

    Returns:
        tuple: (rendered_query, marker_count)
    """
    rendered = []
    marker_count = 0
    quote = None
    i = 0
    while i < len(query):
        ch = query[i]
        if quote:
            if ch == '\\' and i + 1 < len(query):
                rendered.append(query[i:i + 2].replace('%', '%%'))
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"', '`'):
            quote = ch
        elif ch == '?':
            rendered.append('%s')
            marker_count += 1
            i += 1
            continue
        rendered.append('%%' if ch == '%' else ch)
        i += 1

    if marker_count == 0:
        return query, 0
    return ''.join(rendered), marker_count


class ProgressMonitor:
    """Minimal progress handle that reports task boundaries to the log."""

    def __init__(self):
        self.tasks = []

    def begin_task(self, name):
        self.tasks.append(name)
        logger.debug(f"Task started: {name}")

    def done(self):
        if self.tasks:
            logger.debug(f"Task finished: {self.tasks.pop()}")


class RowCursor:
    """
    Forward-only cursor over a fetched result.

    Getters are null-safe: a missing column, a NULL value or a value of the
    wrong type yields 0 (get_long) or None (get_timestamp, get_string).
    """

    def __init__(self, column_names: Sequence[str], rows: Sequence[Sequence[Any]]):
        self.column_names = list(column_names or [])
        self._rows = list(rows or [])
        self._position = -1

    def next(self) -> bool:
        if self._position + 1 >= len(self._rows):
            self._position = len(self._rows)
            return False
        self._position += 1
        return True

    def _value(self, column):
        if not 0 <= self._position < len(self._rows):
            return None
        row = self._rows[self._position]
        if isinstance(column, int):
            index = column
        else:
            try:
                index = self.column_names.index(column)
            except ValueError:
                return None
        if not 0 <= index < len(row):
            return None
        return row[index]

    def get_long(self, column) -> int:
        value = self._value(column)
        if value is None or isinstance(value, bool):
            return 0
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return 0

    def get_timestamp(self, column) -> Optional[datetime]:
        value = self._value(column)
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                return None
        return None

    def get_string(self, column) -> Optional[str]:
        value = self._value(column)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode('utf-8', errors='replace')
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return format(value, 'f')
        return str(value)

    def close(self):
        self._rows = []
        self._position = -1


class Statement:
    """
    A prepared statement with positional parameters.

    Parameters are bound by index with set_parameter(). By default marker N
    takes parameter N. parameter_slots overrides that mapping: marker N takes
    the parameter bound at index parameter_slots[N], which lets a statement
    skip bound positions that have no marker in the SQL text.
    """

    def __init__(self, session, query, statement_type=STATEMENT_QUERY):
        self.session = session
        self.query = query
        self.statement_type = statement_type
        self.source = None
        self.parameter_slots: Optional[List[int]] = None
        self._parameters = {}
        self._closed = False
        self._rendered_query, self.marker_count = render_positional_query(query)

    def set_statement_source(self, source):
        """Attaches the originating request so failures can be traced back to it."""
        self.source = source

    def set_parameter(self, index, value):
        self._check_open()
        self._parameters[index] = value

    def set_string(self, index, value):
        self.set_parameter(index, None if value is None else str(value))

    def clear_parameters(self):
        self._parameters = {}

    def bound_parameters(self):
        """
        Returns the parameter tuple in marker order.

        Raises:
            ValueError: If the slot mapping does not match the marker count or
                        a slot has no bound value.
        """
        if self.parameter_slots is None:
            slots = list(range(self.marker_count))
        else:
            slots = list(self.parameter_slots)
        if len(slots) != self.marker_count:
            raise ValueError(
                f"Statement has {self.marker_count} parameter marker(s) but {len(slots)} slot(s)"
            )
        missing = [slot for slot in slots if slot not in self._parameters]
        if missing:
            raise ValueError(f"No value bound for parameter index(es) {missing}")
        return tuple(self._parameters[slot] for slot in slots)

    def execute_query(self) -> RowCursor:
        """Runs the statement and returns a cursor over its result."""
        self._check_open()
        parameters = self.bound_parameters()
        logger.debug(f"Executing query: {self.query.strip()}")
        result = self.session.connector.query_result(self._rendered_query, parameters or None)
        return RowCursor(result.column_names, result.result_rows)

    def execute_update(self) -> int:
        """Runs a data-modification statement and returns the written row count."""
        self._check_open()
        parameters = self.bound_parameters()
        logger.debug(f"Executing command: {self.query.strip()}")
        summary = self.session.connector.execute_command(
            self._rendered_query, parameters or None, settings=self.session.command_settings
        )
        written_rows = getattr(summary, 'written_rows', 0)
        return written_rows if isinstance(written_rows, int) else 0

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._parameters = {}
        self.session.release_statement(self)

    @property
    def closed(self):
        return self._closed

    def _check_open(self):
        if self._closed:
            raise RuntimeError("Statement is closed")


class ExecutionSession:
    """
    Scoped session over a connector.

    Use as a context manager; every statement prepared through the session is
    closed when the session closes, on normal exit and on exceptions alike.
    """

    def __init__(self, connector, monitor=None, owner=None, purpose='', meta=False, command_settings=None):
        self.connector = connector
        self.monitor = monitor
        self.owner = owner
        self.purpose = purpose
        self.meta = meta
        self.command_settings = command_settings or {}
        self._statements = []
        self._closed = False
        if self.monitor is not None:
            self.monitor.begin_task(purpose)
        logger.debug(f"Opened {'meta' if meta else 'data'} session: {purpose}")

    def prepare_statement(self, query, statement_type=STATEMENT_QUERY) -> Statement:
        if self._closed:
            raise RuntimeError(f"Session '{self.purpose}' is closed")
        statement = Statement(self, query, statement_type)
        self._statements.append(statement)
        return statement

    def release_statement(self, statement):
        """Forgets a closed statement so long batches do not accumulate them."""
        if statement in self._statements:
            self._statements.remove(statement)

    @property
    def open_statements(self):
        return list(self._statements)

    def close(self):
        if self._closed:
            return
        for statement in list(self._statements):
            statement.close()
        self._statements = []
        self._closed = True
        if self.monitor is not None:
            self.monitor.done()
        logger.debug(f"Closed session: {self.purpose}")

    @property
    def closed(self):
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
