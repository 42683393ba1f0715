import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import main
from plugins.clickhouse import ClickHousePlugin
from plugins.clickhouse.table import ClickHouseTable
from tests.helpers import query_result

STATS = query_result(
    ['table_size', 'table_rows', 'latest_modification', 'min_date', 'max_date', 'engine'],
    [(2048, 10, None, None, None, 'ReplacingMergeTree')]
)
COLUMNS = query_result(
    ['name', 'type', 'position', 'default_kind', 'is_in_primary_key', 'comment'],
    [('id', 'UInt64', 1, '', 1, ''), ('status', 'String', 2, '', 0, '')]
)


def fake_query(query, parameters=None):
    return COLUMNS if 'system.columns' in query else STATS


class TestMainHelpers(unittest.TestCase):
    def test_discover_plugins(self):
        plugins = main.discover_plugins()
        self.assertIsInstance(plugins['clickhouse'], ClickHousePlugin)

    def test_split_table_name(self):
        self.assertEqual(main.split_table_name('analytics.events', 'default'), ('analytics', 'events'))
        self.assertEqual(main.split_table_name('events', 'default'), ('default', 'events'))

    def test_unknown_db_type(self):
        with self.assertRaises(ValueError):
            main.TableTool({'db_type': 'oracle'}, 'events')


class TestTableTool(unittest.TestCase):
    def setUp(self):
        self.tool = main.TableTool({'db_type': 'clickhouse', 'database': 'analytics'}, 'events')
        self.tool.connector.client = MagicMock()
        self.tool.connector.client.query.side_effect = fake_query

    def test_table_is_clickhouse_table(self):
        self.assertIsInstance(self.tool.table, ClickHouseTable)
        self.assertEqual(self.tool.table.full_name, 'analytics.events')

    def test_show_statistics_json(self):
        data = json.loads(self.tool.show_statistics('json'))
        self.assertEqual(data['analytics.events']['table_rows'], 10)
        self.assertEqual(data['analytics.events']['engine'], 'ReplacingMergeTree')
        self.assertTrue(data['analytics.events']['has_statistics'])

    def test_show_statistics_adoc(self):
        output = self.tool.show_statistics('adoc')
        self.assertIn('|Size|2 KB', output)
        self.assertIn('|Row Count|10', output)

    def _rows_file(self, data):
        tmp = tempfile.NamedTemporaryFile('w', suffix='.json', delete=False)
        json.dump(data, tmp)
        tmp.close()
        self.addCleanup(Path(tmp.name).unlink)
        return tmp.name

    def test_update_dry_run_uses_primary_key(self):
        rows_file = self._rows_file({'set': ['status'], 'rows': [['done', 1], ['done', 2]]})

        output = self.tool.run_batch('update', rows_file, True, 'json')

        queries = json.loads(output)['queries']
        self.assertEqual(queries, ["ALTER TABLE analytics.events UPDATE status=? WHERE id = ?;\n"] * 2)
        self.tool.connector.client.command.assert_not_called()

    def test_dry_run_clears_batch(self):
        rows_file = self._rows_file({'keys': ['id'], 'rows': [[1], [2]]})
        batches = []
        build_batch = self.tool.build_batch

        def capture(*args, **kwargs):
            batch = build_batch(*args, **kwargs)
            batches.append(batch)
            return batch

        self.tool.build_batch = capture

        output = self.tool.run_batch('delete', rows_file, True, 'adoc')

        self.assertIn("ALTER TABLE analytics.events DELETE WHERE id = ?;", output)
        self.assertEqual(len(batches), 1)
        self.assertEqual(batches[0].values, [])

    def test_delete_executes(self):
        rows_file = self._rows_file({'keys': ['id'], 'rows': [[7]]})

        output = self.tool.run_batch('delete', rows_file, False, 'json')

        self.assertEqual(json.loads(output)['rows_processed'], 1)
        args, kwargs = self.tool.connector.client.command.call_args
        self.assertEqual(args[0], "ALTER TABLE analytics.events DELETE WHERE id = %s;\n")
        self.assertEqual(kwargs['parameters'], (7,))

    def test_unknown_column_raises(self):
        rows_file = self._rows_file({'keys': ['nope'], 'rows': [[1]]})
        with self.assertRaises(ValueError):
            self.tool.run_batch('delete', rows_file, False, 'json')


if __name__ == '__main__':
    unittest.main()
