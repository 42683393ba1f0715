#!/usr/bin/env python3
"""
Main entrypoint for the table tool.

Discovers engine plugins, loads the YAML configuration, connects and either
prints a table's storage statistics or runs an update/delete batch read from
a JSON rows file.

Rows file format:
    {"set": ["name", "status"], "keys": ["id"], "rows": [["x", "a", "6f1c..."]]}
    {"keys": ["id"], "rows": [["6f1c..."]]}
"""

import yaml
import sys
import importlib
import json
import logging
import argparse
import pkgutil
import getpass
import socket
from pathlib import Path

from plugins.base import BasePlugin
from plugins.common.exceptions import CommandExecutionError
from plugins.common.session import ProgressMonitor
from utils.json_utils import safe_json_dumps

logger = logging.getLogger(__name__)

APP_NAME = "chtable"


def discover_plugins():
    """Finds and loads all available plugins from the 'plugins' directory.

    Every sub-package of 'plugins' is imported and each BasePlugin subclass
    found in it is instantiated.

    Returns:
        dict: Plugin instances keyed by technology name.
    """
    plugins_path = Path(__file__).parent / "plugins"
    discovered_plugins = {}
    for _, name, is_pkg in pkgutil.iter_modules([str(plugins_path)]):
        if not is_pkg or name == "common":
            continue
        try:
            module = importlib.import_module(f'plugins.{name}')
        except ImportError as e:
            logger.warning(f"Could not import plugin '{name}'. Missing dependency: {e}. Skipping.")
            continue
        for item_name in dir(module):
            item = getattr(module, item_name)
            if isinstance(item, type) and issubclass(item, BasePlugin) and item is not BasePlugin:
                plugin_instance = item()
                discovered_plugins[plugin_instance.technology_name] = plugin_instance
                logger.debug(f"Loaded plugin: {plugin_instance.technology_name}")
    return discovered_plugins


def load_settings(config_file):
    """Loads the main YAML configuration file."""
    try:
        with open(config_file, 'r') as f:
            return yaml.safe_load(f) or {}
    except (FileNotFoundError, yaml.YAMLError) as e:
        print(f"Error loading settings from {config_file}: {e}")
        sys.exit(1)


def split_table_name(table_name, default_database):
    """'db.table' -> ('db', 'table'); a bare name uses the configured database."""
    if '.' in table_name:
        database, _, name = table_name.partition('.')
        return database, name
    return default_database, table_name


def load_rows_file(rows_file):
    with open(rows_file, 'r') as f:
        data = json.load(f)
    if not isinstance(data.get('rows'), list):
        raise ValueError(f"{rows_file}: 'rows' must be a list of value lists")
    return data


class TableTool:
    """Runs one action against one table."""

    def __init__(self, settings, table_name):
        self.settings = settings
        self.available_plugins = discover_plugins()
        active_tech = self.settings.get('db_type', 'clickhouse')
        self.active_plugin = self.available_plugins.get(active_tech)

        if not self.active_plugin:
            raise ValueError(f"Unsupported or missing db_type: '{active_tech}'. Available plugins: {list(self.available_plugins.keys())}")

        self.connector = self.active_plugin.get_connector(self.settings)
        self.formatter = self.connector.formatter
        database, name = split_table_name(table_name, self.settings.get('database', 'default'))
        self.table = self.active_plugin.open_table(self.connector, database, name)
        self.monitor = ProgressMonitor()

    def show_statistics(self, output_format):
        properties = self.table.get_stat_properties(self.monitor)
        if output_format == 'json':
            data = {p['name']: p['value'] for p in properties}
            data['has_statistics'] = self.table.has_statistics()
            return safe_json_dumps({self.table.full_name: data}, indent=2)

        if not self.table.has_statistics():
            return self.formatter.format_note(f"No statistics available for {self.table.full_name}.")
        return self.formatter.format_dict_as_table({p['label']: p['display'] for p in properties})

    def _resolve(self, names, attributes_by_name):
        unknown = [n for n in names if n not in attributes_by_name]
        if unknown:
            raise ValueError(f"Unknown column(s) in {self.table.full_name}: {unknown}")
        return [attributes_by_name[n] for n in names]

    def build_batch(self, action, rows_data, source):
        attributes = self.table.read_attributes(self.monitor)
        attributes_by_name = {a.name: a for a in attributes}
        if rows_data.get('keys'):
            key_attributes = self._resolve(rows_data['keys'], attributes_by_name)
        else:
            key_attributes = [a for a in attributes if a.is_in_primary_key]

        if action == 'update':
            update_attributes = self._resolve(rows_data.get('set', []), attributes_by_name)
            batch = self.table.update_data(None, update_attributes, key_attributes, None, source)
        else:
            batch = self.table.delete_data(None, key_attributes, source)

        for row in rows_data['rows']:
            batch.add(row)
        return batch

    def run_batch(self, action, rows_file, dry_run, output_format):
        rows_data = load_rows_file(rows_file)
        source = {
            'tool': APP_NAME,
            'action': action,
            'rows_file': str(rows_file),
            'run_by_user': getpass.getuser(),
            'run_from_host': socket.gethostname(),
        }
        batch = self.build_batch(action, rows_data, source)
        purpose = "Update rows" if action == 'update' else "Delete rows"
        try:
            with self.connector.open_session(self.monitor, self.table, purpose) as session:
                if dry_run:
                    actions = batch.generate_persist_actions(session)
                    if output_format == 'json':
                        return safe_json_dumps({'queries': actions}, indent=2)
                    return self.formatter.format_sql(actions)
                result = batch.execute(session)
        finally:
            batch.close()
        if output_format == 'json':
            return safe_json_dumps(result, indent=2)
        return (
            self.formatter.format_sql(result.queries)
            + self.formatter.format_note(f"{result.rows_processed} row(s) submitted to {self.table.full_name}.")
        )


def main():
    """Parses command line arguments and runs the requested action."""
    parser = argparse.ArgumentParser(description='ClickHouse table statistics and data editing tool')
    parser.add_argument('--config', default='config/config.yaml', help='Path to configuration file')
    parser.add_argument('--table', required=True, help="Table name, 'database.table' or a name in the configured database")
    parser.add_argument('--action', choices=['stats', 'update', 'delete'], default='stats')
    parser.add_argument('--rows', help='JSON rows file for update/delete')
    parser.add_argument('--format', choices=['adoc', 'json'], default='adoc', help='Output format')
    parser.add_argument('--dry-run', action='store_true', help='Print the generated SQL without executing it')
    args = parser.parse_args()

    settings = load_settings(args.config)
    logging.basicConfig(
        level=getattr(logging, str(settings.get('log_level', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.action != 'stats' and not args.rows:
        parser.error(f"--rows is required for --action {args.action}")

    tool = TableTool(settings, args.table)
    tool.connector.connect()
    try:
        if args.action == 'stats':
            print(tool.show_statistics(args.format))
        else:
            print(tool.run_batch(args.action, args.rows, args.dry_run, args.format))
    except CommandExecutionError as e:
        print(tool.formatter.format_error(f"Command failed: {e}"))
        sys.exit(2)
    except (ValueError, OSError) as e:
        print(tool.formatter.format_error(str(e)))
        sys.exit(1)
    finally:
        tool.connector.disconnect()


if __name__ == '__main__':
    sys.path.insert(0, str(Path(__file__).parent))
    main()
