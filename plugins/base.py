from abc import ABC, abstractmethod

from plugins.common.relation import Relation


class BasePlugin(ABC):
    """Abstract base class for all database technology plugins."""

    @property
    @abstractmethod
    def technology_name(self):
        """A lowercase, URL-friendly name for the technology (e.g., 'clickhouse')."""
        pass

    @abstractmethod
    def get_connector(self, settings):
        """Returns an instance of the technology-specific connector."""
        pass

    @abstractmethod
    def get_table(self, relation):
        """
        Returns the technology-specific table object for a generic relation.

        The returned object carries the engine's statistics and data editing
        behaviour; the relation stays the shared description of the table.
        """
        pass

    def open_table(self, connector, container_name, table_name, table_type=None):
        """Convenience wrapper: builds the Relation and returns get_table() for it."""
        return self.get_table(Relation(connector, container_name, table_name, table_type))
