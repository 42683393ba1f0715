"""
Schema catalog helpers used when rendering SQL for data editing.

Covers attribute predicates (pseudo, hidden, null values), full type names and
identifier quoting for names written into DML statements.
"""

import re

# Evaluation contexts for get_object_full_name()
CONTEXT_DML = 'dml'

_SIMPLE_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

# Keywords that would be misparsed as bare column or table names.
RESERVED_WORDS = frozenset({
    'ALL', 'ALTER', 'AND', 'ANY', 'ARRAY', 'AS', 'ASC', 'BETWEEN', 'BY', 'CASE',
    'CAST', 'CROSS', 'DATABASE', 'DELETE', 'DESC', 'DISTINCT', 'ELSE', 'END',
    'EXISTS', 'FALSE', 'FINAL', 'FORMAT', 'FROM', 'FULL', 'GLOBAL', 'GROUP',
    'HAVING', 'IN', 'INNER', 'INTERVAL', 'INTO', 'IS', 'JOIN', 'KEY', 'LEFT',
    'LIKE', 'LIMIT', 'NOT', 'NULL', 'ON', 'OR', 'ORDER', 'PREWHERE', 'RIGHT',
    'SAMPLE', 'SELECT', 'SET', 'SETTINGS', 'TABLE', 'THEN', 'TO', 'TRUE',
    'UNION', 'UPDATE', 'USING', 'WHEN', 'WHERE', 'WITH',
})


def is_pseudo_attribute(attribute):
    """True for engine-provided virtual columns (e.g. _part, _partition_id)."""
    return bool(getattr(attribute, 'pseudo', False))


def is_hidden_object(attribute):
    """True for columns that data editors must not write."""
    return bool(getattr(attribute, 'hidden', False))


def is_null_value(value):
    return value is None


def get_full_type_name(attribute):
    """Returns the declared type name of an attribute, or None when unknown."""
    return getattr(attribute, 'type_name', None)


def quote_identifier(name):
    """
    Quotes an identifier for ClickHouse when it is not a plain word.

    Examples:
        "status"     -> status
        "order"      -> `order`
        "my col"     -> `my col`
        "we`ird"     -> `we\\`ird`
    """
    if _SIMPLE_IDENTIFIER.match(name) and name.upper() not in RESERVED_WORDS:
        return name
    escaped = name.replace('\\', '\\\\').replace('`', '\\`')
    return f"`{escaped}`"


def get_object_full_name(attribute, context=CONTEXT_DML):
    """
    Returns the name of an attribute as it should appear in the given context.

    In DML context the name is quoted when needed; any other context gets it as-is.
    """
    if context == CONTEXT_DML:
        return quote_identifier(attribute.name)
    return attribute.name


def get_entity_script_name(relation, options=None):
    """
    Returns the qualified relation name for use in generated scripts.

    Args:
        relation: Relation (or object with container_name and name)
        options: Optional dict; {'omit_container': True} drops the database part

    Returns:
        str: e.g. "analytics.events" or "`my db`.events"
    """
    options = options or {}
    table_name = quote_identifier(relation.name)
    if options.get('omit_container') or not relation.container_name:
        return table_name
    return f"{quote_identifier(relation.container_name)}.{table_name}"
