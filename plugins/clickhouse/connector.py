"""
ClickHouse connector implementation.

Provides unified interface for:
1. SQL queries and commands (via clickhouse-connect client)
2. Scoped execution sessions used by table statistics and data editing
"""

import logging
import clickhouse_connect
from typing import Dict, Optional, Any

from plugins.common.output_formatters import AsciiDocFormatter
from plugins.common.session import ExecutionSession

logger = logging.getLogger(__name__)


class ClickHouseConnector:
    """
    Connector for a single ClickHouse server.

    Query Formats:
        execute_query():   SELECT statements, returns list of tuples
        query_result():    SELECT statements, returns the driver QueryResult
        execute_command(): ALTER/INSERT/DDL statements, returns the driver summary

    Parameters use the driver's client-side binding (%s / %(name)s). Code that
    works with '?' markers goes through open_session() and prepared statements.

    Example:
        connector = ClickHouseConnector(settings)
        connector.connect()

        rows = connector.execute_query("SELECT name FROM system.tables WHERE database = %s", ['default'])

        with connector.open_session(None, table, "Read relation statistics", meta=True) as session:
            ...
    """

    def __init__(self, settings):
        """Initialize ClickHouse connector."""
        self.settings = settings
        self.client = None
        self._version_info = {}
        self.formatter = AsciiDocFormatter()

        logger.info("ClickHouse connector initialized")

    def _parse_connection_params(self):
        """
        Parse connection parameters from settings.

        Handles both modern (hosts, http_port, protocol) and legacy (host, port) formats.

        Returns:
            dict: Parameters for clickhouse_connect.get_client()
        """
        hosts = self.settings.get('hosts', [])
        if not hosts:
            host = self.settings.get('host', 'localhost')
        else:
            host = hosts[0] if isinstance(hosts, list) else hosts

        protocol = self.settings.get('protocol', 'http').lower()
        secure = self.settings.get('secure', False)

        # clickhouse-connect only speaks HTTP; a native port setting is ignored
        if protocol == 'native':
            logger.warning("Native protocol is not supported by clickhouse-connect, using HTTP")
        port = self.settings.get('http_port', 8443 if secure else 8123)
        interface = 'https' if secure else 'http'

        # Legacy 'port' setting overrides protocol-specific ports
        if 'port' in self.settings:
            port = self.settings.get('port')

        params = {
            'host': host,
            'port': port,
            'username': self.settings.get('user', 'default'),
            'password': self.settings.get('password', ''),
            'database': self.settings.get('database', 'default'),
            'interface': interface,
            'secure': secure,
            'connect_timeout': self.settings.get('connection_timeout', 10),
            'send_receive_timeout': self.settings.get('request_timeout', 30),
            'client_name': self.settings.get('client_name', 'chtable')
        }

        if self.settings.get('compression', True):
            params['compress'] = True

        logger.info(f"Connecting to ClickHouse: {interface}://{host}:{port} (secure={secure})")
        return params

    def connect(self):
        """Establishes connection to ClickHouse."""
        try:
            connection_params = self._parse_connection_params()
            self.client = clickhouse_connect.get_client(**connection_params)
            self._version_info = self._get_version_info()
            logger.info(f"Connected to ClickHouse {self._version_info.get('version', 'Unknown')}")

        except Exception as e:
            logger.error(f"Failed to connect to ClickHouse: {e}")
            raise ConnectionError(f"Could not connect to ClickHouse: {e}")

    def _get_version_info(self):
        """
        Retrieves and parses ClickHouse version information.

        Returns:
            dict: Version info with keys:
                - version: Full version string (e.g., "25.3.6.56")
                - hostname: Server hostname
                - major_version: Major version number (e.g., 25)
                - version_tuple: Tuple of version numbers (e.g., (25, 3, 6, 56))
        """
        try:
            result = self.client.query("SELECT version() as version, hostName() as hostname")
            if result.result_rows:
                version_str, hostname = result.result_rows[0][0], result.result_rows[0][1]
                version_tuple = tuple(int(p) for p in version_str.split('.') if p.isdigit())
                return {
                    'version': version_str,
                    'hostname': hostname,
                    'major_version': version_tuple[0] if version_tuple else 0,
                    'version_tuple': version_tuple
                }
            return {}
        except Exception as e:
            logger.warning(f"Could not get version info: {e}")
            return {}

    def disconnect(self):
        """Closes the client connection."""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from ClickHouse")

    def _require_client(self):
        if self.client is None:
            raise ConnectionError("ClickHouse connector is not connected")
        return self.client

    def execute_query(self, query, params=None):
        """
        Executes a query and returns raw rows.

        Returns:
            list: List of tuples (raw query results)
        """
        return self.query_result(query, params).result_rows

    def query_result(self, query, params=None):
        """Executes a query and returns the driver QueryResult (rows and column names)."""
        client = self._require_client()
        try:
            return client.query(query, parameters=params)
        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            logger.debug(f"Failed query: {query}")
            raise

    def execute_command(self, query, params=None, settings: Optional[Dict[str, Any]] = None):
        """
        Executes a statement that returns no result set (ALTER, INSERT, DDL).

        Returns:
            The driver command result (QuerySummary for mutations)
        """
        client = self._require_client()
        try:
            return client.command(query, parameters=params, settings=settings or None)
        except Exception as e:
            logger.error(f"Command execution failed: {e}")
            logger.debug(f"Failed command: {query}")
            raise

    def open_session(self, monitor, owner, purpose, meta=False):
        """
        Opens a scoped execution session.

        Meta sessions serve catalog reads; data sessions carry the configured
        mutation settings (mutations_sync) into every command they run.
        """
        command_settings = {}
        if not meta and self.settings.get('mutations_sync') is not None:
            command_settings['mutations_sync'] = self.settings['mutations_sync']
        return ExecutionSession(self, monitor=monitor, owner=owner, purpose=purpose,
                                meta=meta, command_settings=command_settings)

    @property
    def version_info(self):
        """Returns version information for version-aware queries."""
        return self._version_info

    @property
    def database(self):
        return self.settings.get('database', 'default')

    def get_db_metadata(self):
        """Returns database metadata."""
        return {
            'version': self._version_info.get('version'),
            'hostname': self._version_info.get('hostname'),
            'database': self.database
        }
