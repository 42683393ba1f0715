from plugins.base import BasePlugin
from .connector import ClickHouseConnector
from .table import ClickHouseTable


class ClickHousePlugin(BasePlugin):
    @property
    def technology_name(self):
        return "clickhouse"

    def get_connector(self, settings):
        return ClickHouseConnector(settings)

    def get_table(self, relation):
        return ClickHouseTable(relation)
