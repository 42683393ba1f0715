"""
Output formatting utilities for command line results.

Provides consistent formatting across all database plugins:
- AsciiDoc tables (from row dicts or a single key/value dict)
- SQL source blocks for generated statements
- Admonition blocks (NOTE, WARNING, ERROR)
- Human readable byte sizes for statistics properties
"""

import logging
from typing import List, Dict, Any, Optional

logger = logging.getLogger(__name__)

_BYTE_UNITS = ['B', 'KB', 'MB', 'GB', 'TB', 'PB']


def format_bytes(size: Optional[int]) -> str:
    """
    Formats a byte count with a binary unit suffix.

    Examples:
        None       -> "-"
        512        -> "512 B"
        1536       -> "1.5 KB"
        1073741824 -> "1 GB"
    """
    if size is None:
        return "-"
    value = float(size)
    for unit in _BYTE_UNITS:
        if abs(value) < 1024 or unit == _BYTE_UNITS[-1]:
            if unit == 'B':
                return f"{int(value)} B"
            return f"{value:.1f}".rstrip('0').rstrip('.') + f" {unit}"
        value /= 1024
    return f"{size} B"


class AsciiDocFormatter:
    """
    Formats data into AsciiDoc markup.

    Supports:
    - Tables from list of dicts
    - Two-column tables from a dict
    - SQL and literal blocks
    - Admonition blocks for messages
    """

    def format_table(self, data: List[Dict[str, Any]]) -> str:
        """
        Formats a list of dictionaries as an AsciiDoc table.

        Args:
            data: List of dicts where keys are column names

        Returns:
            AsciiDoc table string
        """
        if not data:
            return self.format_note("No data to display.")

        columns = list(data[0].keys())

        table_lines = ['|===']
        table_lines.append('|' + '|'.join(columns))

        for row in data:
            row_values = [self._escape_asciidoc(str(row.get(col, ''))) for col in columns]
            table_lines.append('|' + '|'.join(row_values))

        table_lines.append('|===')

        return '\n'.join(table_lines)

    def format_dict_as_table(self, data: Dict[str, Any],
                             key_header: str = "Property",
                             value_header: str = "Value") -> str:
        """Formats a dictionary as a two-column AsciiDoc table."""
        if not data:
            return self.format_note("No data to display.")

        table_lines = ['|===']
        table_lines.append(f'|{key_header}|{value_header}')

        for key, value in data.items():
            key_str = self._escape_asciidoc(str(key))
            value_str = self._escape_asciidoc('' if value is None else str(value))
            table_lines.append(f'|{key_str}|{value_str}')

        table_lines.append('|===')

        return '\n'.join(table_lines)

    def _escape_asciidoc(self, text: str) -> str:
        """Escapes table delimiters and macro brackets."""
        text = text.replace('\\', '\\\\')
        text = text.replace('|', '\\|')
        text = text.replace('[', '\\[')
        text = text.replace(']', '\\]')
        return text

    def format_sql(self, statements: List[str]) -> str:
        """Formats generated statements as an SQL source block."""
        body = ''.join(s if s.endswith('\n') else s + '\n' for s in statements)
        return f"[source,sql]\n----\n{body}----\n"

    def format_note(self, message: str) -> str:
        return f"[NOTE]\n====\n{message}\n====\n"

    def format_error(self, error: str) -> str:
        return f"[CAUTION]\n====\n{error}\n====\n"
