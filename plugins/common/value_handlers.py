"""
Value handlers: convert raw row values into statement parameters.

One handler is chosen per attribute from its declared type. Binding always
goes through bind_value_object(session, statement, attribute, index, value),
which converts the value and sets statement parameter ``index``.
"""

import logging
import re
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

_WRAPPER_TYPE = re.compile(r'^(Nullable|LowCardinality)\((.*)\)$', re.IGNORECASE)


def unwrap_type_name(type_name):
    """
    Strips Nullable(...) and LowCardinality(...) wrappers from a type name.

    Examples:
        "Nullable(UUID)"                     -> "UUID"
        "LowCardinality(Nullable(String))"   -> "String"
    """
    if not type_name:
        return ''
    type_name = type_name.strip()
    match = _WRAPPER_TYPE.match(type_name)
    while match:
        type_name = match.group(2).strip()
        match = _WRAPPER_TYPE.match(type_name)
    return type_name


class ValueHandler:
    """Default handler: passes values through unchanged."""

    def convert(self, attribute, value):
        return value

    def bind_value_object(self, session, statement, attribute, index, value):
        if value is None:
            statement.set_parameter(index, None)
            return
        try:
            statement.set_parameter(index, self.convert(attribute, value))
        except (TypeError, ValueError) as e:
            raise ValueError(
                f"Cannot bind value {value!r} to column '{attribute.name}' ({attribute.type_name}): {e}"
            ) from e


class StringValueHandler(ValueHandler):
    def convert(self, attribute, value):
        if isinstance(value, bytes):
            return value.decode('utf-8')
        return str(value)


class NumberValueHandler(ValueHandler):
    def convert(self, attribute, value):
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return value
        if isinstance(value, bool):
            return int(value)
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return Decimal(text)
        except InvalidOperation:
            raise ValueError(f"'{text}' is not a number")


class UUIDValueHandler(ValueHandler):
    """Binds UUIDs as their canonical text form; the SQL wraps them in toUUID()."""

    def convert(self, attribute, value):
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))


class DateValueHandler(ValueHandler):
    def convert(self, attribute, value):
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return date.fromisoformat(str(value)[:10]).isoformat()


class DateTimeValueHandler(ValueHandler):
    def convert(self, attribute, value):
        if isinstance(value, datetime):
            return value.strftime('%Y-%m-%d %H:%M:%S')
        if isinstance(value, date):
            return f"{value.isoformat()} 00:00:00"
        return datetime.fromisoformat(str(value)).strftime('%Y-%m-%d %H:%M:%S')


class EnumValueHandler(ValueHandler):
    """Enums are bound by element name; the SQL CASTs the text to the enum type."""

    def convert(self, attribute, value):
        return str(value)


_NUMERIC_PREFIXES = ('INT', 'UINT', 'FLOAT', 'DECIMAL', 'BOOL')

DEFAULT_HANDLER = ValueHandler()
STRING_HANDLER = StringValueHandler()
NUMBER_HANDLER = NumberValueHandler()
UUID_HANDLER = UUIDValueHandler()
DATE_HANDLER = DateValueHandler()
DATETIME_HANDLER = DateTimeValueHandler()
ENUM_HANDLER = EnumValueHandler()


def get_value_handler(attribute):
    """
    Returns the handler for an attribute's declared type.

    Args:
        attribute: Attribute with a type_name

    Returns:
        ValueHandler: Handler instance (shared, stateless)
    """
    base_type = unwrap_type_name(getattr(attribute, 'type_name', None)).upper()
    if not base_type:
        return DEFAULT_HANDLER
    if base_type.startswith('ENUM'):
        return ENUM_HANDLER
    if base_type == 'UUID':
        return UUID_HANDLER
    if base_type in ('DATE', 'DATE32'):
        return DATE_HANDLER
    if base_type.startswith('DATETIME'):
        return DATETIME_HANDLER
    if base_type.startswith(_NUMERIC_PREFIXES):
        return NUMBER_HANDLER
    if base_type.startswith(('STRING', 'FIXEDSTRING', 'VARCHAR', 'TEXT')):
        return STRING_HANDLER
    return DEFAULT_HANDLER
