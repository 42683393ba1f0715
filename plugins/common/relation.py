"""
Generic relation model shared by all engine plugins.

A Relation is the technology-agnostic description of one table: where it
lives, what it is called and which connector reaches it. Engine plugins attach
their own behaviour (statistics, DML synthesis) by wrapping a Relation, see
BasePlugin.get_table().
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Attribute:
    """
    One column of a relation as reported by the engine catalog.

    Attributes:
        name: Column name, unquoted
        type_name: Full declared type, e.g. "Nullable(String)" or "Enum8('a' = 1)"
        ordinal_position: 1-based position in the table
        nullable: Whether the column accepts NULL
        is_in_primary_key: Whether the column is part of the primary/sorting key
        default_kind: Engine default kind ('', 'DEFAULT', 'MATERIALIZED', 'ALIAS', ...)
        pseudo: Virtual column provided by the engine rather than stored
        hidden: Column that must not be written by data editors
    """

    def __init__(self, name, type_name, ordinal_position=0, nullable=False,
                 is_in_primary_key=False, default_kind='', pseudo=False,
                 hidden=False, comment=None):
        self.name = name
        self.type_name = type_name
        self.ordinal_position = ordinal_position
        self.nullable = nullable
        self.is_in_primary_key = is_in_primary_key
        self.default_kind = default_kind or ''
        self.pseudo = pseudo
        self.hidden = hidden
        self.comment = comment

    def __repr__(self):
        return f"Attribute({self.name!r}, {self.type_name!r})"

    def __eq__(self, other):
        if not isinstance(other, Attribute):
            return NotImplemented
        return self.name == other.name and self.type_name == other.type_name

    def __hash__(self):
        return hash((self.name, self.type_name))


class Relation:
    """A table (or view) inside a database container."""

    def __init__(self, connector, container_name: str, name: str, table_type: Optional[str] = None):
        self.connector = connector
        self.container_name = container_name
        self.name = name
        self.table_type = table_type or 'TABLE'

    @property
    def full_name(self):
        """Unquoted 'database.table' name, for messages and logs."""
        return f"{self.container_name}.{self.name}"

    def __repr__(self):
        return f"Relation({self.full_name!r})"
