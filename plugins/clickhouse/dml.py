"""
ClickHouse mutation statements for data editing.

ClickHouse has no UPDATE/DELETE statements in the classic sense; row edits
are mutations issued through ALTER TABLE:

    ALTER TABLE db.t UPDATE col=?, ... WHERE key = ? AND ...;
    ALTER TABLE db.t DELETE WHERE key = ? AND ...;

Builders here return the SQL text together with its parameter slots: for each
'?' marker, the index of the batch attribute whose value it takes. Attributes
left out of the SQL (pseudo or hidden update columns, keys matched with
IS NULL) keep their position in the batch but get no marker.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from plugins.common.schema_utils import (
    CONTEXT_DML,
    get_entity_script_name,
    get_full_type_name,
    get_object_full_name,
    is_hidden_object,
    is_null_value,
    is_pseudo_attribute,
)
from plugins.common.session import STATEMENT_QUERY

logger = logging.getLogger(__name__)


def value_placeholder(type_name: Optional[str]) -> str:
    """
    Returns the parameter marker for a column type.

    Examples:
        "Enum8('a' = 1)" -> CAST(?, 'Enum8(''a'' = 1)')
        "UUID"           -> toUUID(?)
        "Date"           -> toDate(?)
        "DateTime"       -> toDateTime(?)
        "String"         -> ?
    """
    if type_name is not None and type_name.upper().startswith('ENUM'):
        escaped = type_name.replace("'", "''")
        return f"CAST(?, '{escaped}')"
    if type_name is not None and type_name.lower() == 'uuid':
        return "toUUID(?)"
    if type_name is not None and type_name.lower() == 'date':
        return "toDate(?)"
    if type_name is not None and type_name.lower() == 'datetime':
        return "toDateTime(?)"
    return "?"


def _key_conditions(key_attributes, attribute_values, offset) -> Tuple[List[str], List[int]]:
    conditions = []
    slots = []
    for position, key_attribute in enumerate(key_attributes):
        index = offset + position
        key = get_object_full_name(key_attribute, CONTEXT_DML)
        if attribute_values is not None and is_null_value(attribute_values[index]):
            conditions.append(f"{key} IS NULL")
            continue
        placeholder = value_placeholder(get_full_type_name(key_attribute))
        conditions.append(f"{key} = {placeholder}")
        slots.append(index)
    return conditions, slots


def build_update_query(relation, update_attributes: Sequence, key_attributes: Sequence,
                       attribute_values: Optional[Sequence] = None, options=None) -> Tuple[str, List[int]]:
    """
    Builds an ALTER TABLE ... UPDATE statement.

    Args:
        relation: Target relation
        update_attributes: Columns to assign, in binding order
        key_attributes: Columns identifying the row, bound after update_attributes
        attribute_values: Current row (update values then key values); None
                          renders every key as '= ?'
        options: Script options passed to get_entity_script_name()

    Returns:
        tuple: (sql, parameter_slots)

    Raises:
        ValueError: If no attribute is updatable or no key attribute is given
    """
    assignments = []
    slots = []
    for index, update_attribute in enumerate(update_attributes):
        if is_pseudo_attribute(update_attribute) or is_hidden_object(update_attribute):
            continue
        key = get_object_full_name(update_attribute, CONTEXT_DML)
        assignments.append(f"{key}={value_placeholder(get_full_type_name(update_attribute))}")
        slots.append(index)
    if not assignments:
        raise ValueError(f"No updatable attribute for {relation.full_name}")
    if not key_attributes:
        raise ValueError(f"Update of {relation.full_name} requires at least one key attribute")

    conditions, key_slots = _key_conditions(key_attributes, attribute_values, len(update_attributes))
    sql = (
        f"ALTER TABLE {get_entity_script_name(relation, options)} "
        f"UPDATE {', '.join(assignments)} "
        f"WHERE {' AND '.join(conditions)};\n"
    )
    return sql, slots + key_slots


def build_delete_query(relation, key_attributes: Sequence, attribute_values: Optional[Sequence] = None,
                       options=None) -> Tuple[str, List[int]]:
    """
    Builds an ALTER TABLE ... DELETE statement.

    Raises:
        ValueError: If no key attribute is given (a bare DELETE would wipe the table)
    """
    if not key_attributes:
        raise ValueError(f"Delete from {relation.full_name} requires at least one key attribute")
    conditions, slots = _key_conditions(key_attributes, attribute_values, 0)
    sql = (
        f"ALTER TABLE {get_entity_script_name(relation, options)} "
        f"DELETE WHERE {' AND '.join(conditions)};\n"
    )
    return sql, slots


def _prepare(session, query, slots, source):
    statement = session.prepare_statement(query, STATEMENT_QUERY)
    statement.parameter_slots = slots
    statement.set_statement_source(source)
    return statement


def update_statement_builder(relation, update_attributes, key_attributes, source=None):
    """Returns an ExecuteBatch statement builder for UPDATE mutations."""
    update_attributes = list(update_attributes)
    key_attributes = list(key_attributes)

    def build(session, attribute_values, options):
        query, slots = build_update_query(relation, update_attributes, key_attributes, attribute_values, options)
        return _prepare(session, query, slots, source)

    return build


def delete_statement_builder(relation, key_attributes, source=None):
    """Returns an ExecuteBatch statement builder for DELETE mutations."""
    key_attributes = list(key_attributes)

    def build(session, attribute_values, options):
        query, slots = build_delete_query(relation, key_attributes, attribute_values, options)
        return _prepare(session, query, slots, source)

    return build
