import unittest
from unittest.mock import MagicMock, patch

from plugins.clickhouse.connector import ClickHouseConnector
from tests.helpers import query_result


class TestClickHouseConnector(unittest.TestCase):
    def test_parse_connection_params_defaults(self):
        params = ClickHouseConnector({})._parse_connection_params()

        self.assertEqual(params['host'], 'localhost')
        self.assertEqual(params['port'], 8123)
        self.assertEqual(params['interface'], 'http')
        self.assertEqual(params['username'], 'default')
        self.assertTrue(params['compress'])

    def test_parse_connection_params_secure_hosts_list(self):
        params = ClickHouseConnector({
            'hosts': ['ch1.example.com', 'ch2.example.com'],
            'secure': True,
            'compression': False,
        })._parse_connection_params()

        self.assertEqual(params['host'], 'ch1.example.com')
        self.assertEqual(params['port'], 8443)
        self.assertEqual(params['interface'], 'https')
        self.assertNotIn('compress', params)

    def test_legacy_port_overrides(self):
        params = ClickHouseConnector({'host': 'db', 'port': 18123})._parse_connection_params()
        self.assertEqual(params['port'], 18123)

    @patch('plugins.clickhouse.connector.clickhouse_connect.get_client')
    def test_connect_reads_version(self, get_client):
        client = MagicMock()
        client.query.return_value = query_result(['version', 'hostname'], [('24.8.4.13', 'ch-node-1')])
        get_client.return_value = client
        connector = ClickHouseConnector({'database': 'analytics'})

        connector.connect()

        self.assertEqual(connector.version_info['major_version'], 24)
        self.assertEqual(connector.get_db_metadata(), {
            'version': '24.8.4.13', 'hostname': 'ch-node-1', 'database': 'analytics'
        })

    @patch('plugins.clickhouse.connector.clickhouse_connect.get_client')
    def test_connect_failure_raises_connection_error(self, get_client):
        get_client.side_effect = Exception("Connection refused")

        with self.assertRaises(ConnectionError):
            ClickHouseConnector({}).connect()

    def test_query_without_client_raises(self):
        with self.assertRaises(ConnectionError):
            ClickHouseConnector({}).execute_query("SELECT 1")

    def test_disconnect_closes_client(self):
        connector = ClickHouseConnector({})
        client = MagicMock()
        connector.client = client

        connector.disconnect()

        client.close.assert_called_once()
        self.assertIsNone(connector.client)

    def test_sessions_carry_mutation_settings(self):
        connector = ClickHouseConnector({'mutations_sync': 2})

        self.assertEqual(connector.open_session(None, None, "Update rows").command_settings, {'mutations_sync': 2})
        self.assertEqual(connector.open_session(None, None, "Read", meta=True).command_settings, {})


if __name__ == '__main__':
    unittest.main()
