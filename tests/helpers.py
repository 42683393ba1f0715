"""Shared fakes for unit tests."""

from unittest.mock import MagicMock

from plugins.clickhouse.connector import ClickHouseConnector
from plugins.common.relation import Attribute, Relation


def query_result(column_names, rows):
    result = MagicMock()
    result.column_names = column_names
    result.result_rows = rows
    return result


def make_connector(settings=None):
    """A real connector whose driver client is a MagicMock."""
    connector = ClickHouseConnector(settings or {'database': 'analytics'})
    connector.client = MagicMock()
    return connector


def make_relation(connector=None, database='analytics', name='events'):
    return Relation(connector or make_connector(), database, name)


def attr(name, type_name, **kwargs):
    return Attribute(name, type_name, **kwargs)
