import unittest
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

from plugins.common.session import (
    ExecutionSession,
    ProgressMonitor,
    RowCursor,
    render_positional_query,
)
from tests.helpers import make_connector, query_result


class TestRenderPositionalQuery(unittest.TestCase):
    def test_markers_outside_quotes(self):
        sql, count = render_positional_query("SELECT * FROM t WHERE a = ? AND b = '?' AND `c?` = ?")
        self.assertEqual(sql, "SELECT * FROM t WHERE a = %s AND b = '?' AND `c?` = %s")
        self.assertEqual(count, 2)

    def test_percent_doubled_when_markers_present(self):
        sql, count = render_positional_query("SELECT * FROM t WHERE name LIKE 'a%' AND id = ?")
        self.assertEqual(sql, "SELECT * FROM t WHERE name LIKE 'a%%' AND id = %s")
        self.assertEqual(count, 1)

    def test_no_markers_unchanged(self):
        query = "SELECT '100%' AS pct"
        self.assertEqual(render_positional_query(query), (query, 0))

    def test_doubled_and_escaped_quotes(self):
        sql, count = render_positional_query("SELECT CAST(?, 'Enum8(''a?'' = 1)'), 'it\\'s ?', ?")
        self.assertEqual(sql, "SELECT CAST(%s, 'Enum8(''a?'' = 1)'), 'it\\'s ?', %s")
        self.assertEqual(count, 2)


class TestRowCursor(unittest.TestCase):
    def setUp(self):
        self.cursor = RowCursor(
            ['n', 'd', 'ts', 's', 'dec'],
            [(42, date(2024, 1, 2), datetime(2024, 1, 2, 3, 4, 5), b'bytes', Decimal('1.50'))]
        )

    def test_before_next_everything_is_empty(self):
        self.assertEqual(self.cursor.get_long('n'), 0)
        self.assertIsNone(self.cursor.get_string('s'))

    def test_getters(self):
        self.assertTrue(self.cursor.next())
        self.assertEqual(self.cursor.get_long('n'), 42)
        self.assertEqual(self.cursor.get_long(0), 42)
        self.assertEqual(self.cursor.get_string('d'), '2024-01-02')
        self.assertEqual(self.cursor.get_timestamp('d'), datetime(2024, 1, 2))
        self.assertEqual(self.cursor.get_timestamp('ts'), datetime(2024, 1, 2, 3, 4, 5))
        self.assertEqual(self.cursor.get_string('s'), 'bytes')
        self.assertEqual(self.cursor.get_string('dec'), '1.50')
        self.assertFalse(self.cursor.next())

    def test_missing_and_mismatched_values(self):
        self.cursor.next()
        self.assertEqual(self.cursor.get_long('missing'), 0)
        self.assertEqual(self.cursor.get_long(99), 0)
        self.assertEqual(self.cursor.get_long('s'), 0)
        self.assertIsNone(self.cursor.get_timestamp('n'))
        self.assertIsNone(self.cursor.get_string('missing'))

        overflowing = RowCursor(['inf', 'dec_inf'], [(float('inf'), Decimal('Infinity'))])
        overflowing.next()
        self.assertEqual(overflowing.get_long('inf'), 0)
        self.assertEqual(overflowing.get_long('dec_inf'), 0)


class TestStatementAndSession(unittest.TestCase):
    def setUp(self):
        self.connector = make_connector()

    def test_parameter_slots_select_bound_values(self):
        session = ExecutionSession(self.connector)
        statement = session.prepare_statement("ALTER TABLE t DELETE WHERE a = ? AND c = ?")
        statement.parameter_slots = [0, 2]
        statement.set_parameter(0, 'x')
        statement.set_parameter(1, None)
        statement.set_parameter(2, 7)

        self.assertEqual(statement.bound_parameters(), ('x', 7))

    def test_unbound_parameter_raises(self):
        session = ExecutionSession(self.connector)
        statement = session.prepare_statement("SELECT ?")
        with self.assertRaises(ValueError):
            statement.bound_parameters()

    def test_slot_count_mismatch_raises(self):
        session = ExecutionSession(self.connector)
        statement = session.prepare_statement("SELECT ?, ?")
        statement.parameter_slots = [0]
        statement.set_parameter(0, 1)
        with self.assertRaises(ValueError):
            statement.bound_parameters()

    def test_query_without_markers_passes_no_parameters(self):
        self.connector.client.query.return_value = query_result(['x'], [(1,)])
        with ExecutionSession(self.connector) as session:
            cursor = session.prepare_statement("SELECT 1 AS x").execute_query()

        self.assertTrue(cursor.next())
        self.connector.client.query.assert_called_once_with("SELECT 1 AS x", parameters=None)

    def test_session_closes_statements_on_exception(self):
        monitor = ProgressMonitor()
        with self.assertRaises(RuntimeError):
            with ExecutionSession(self.connector, monitor=monitor, purpose="Read") as session:
                statement = session.prepare_statement("SELECT 1")
                raise RuntimeError("boom")

        self.assertTrue(session.closed)
        self.assertTrue(statement.closed)
        self.assertEqual(monitor.tasks, [])
        with self.assertRaises(RuntimeError):
            session.prepare_statement("SELECT 2")

    def test_closed_statements_leave_the_session(self):
        session = ExecutionSession(self.connector)
        first = session.prepare_statement("SELECT 1")
        second = session.prepare_statement("SELECT 2")
        first.close()
        first.close()

        self.assertEqual(session.open_statements, [second])
        session.close()
        self.assertTrue(second.closed)
        self.assertEqual(session.open_statements, [])

    def test_statement_source_is_kept(self):
        session = ExecutionSession(self.connector)
        statement = session.prepare_statement("SELECT 1")
        source = MagicMock()
        statement.set_statement_source(source)
        self.assertIs(statement.source, source)


if __name__ == '__main__':
    unittest.main()
