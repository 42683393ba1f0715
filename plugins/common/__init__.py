"""
Common utilities shared across all database plugins.

This module provides reusable components for:
- Generic relation and attribute model
- Schema catalog predicates and identifier quoting
- Execution sessions, prepared statements and row cursors
- Value handlers and execute batches for data editing
- Output formatting (AsciiDoc tables, byte sizes)
"""

from .exceptions import CommandExecutionError
from .relation import Attribute, Relation
from .session import ExecutionSession, ProgressMonitor, RowCursor, Statement
from .batch import ExecuteBatch, ExecuteBatchResult
from .output_formatters import AsciiDocFormatter, format_bytes

__all__ = [
    'CommandExecutionError',
    'Attribute',
    'Relation',
    'ExecutionSession',
    'ProgressMonitor',
    'RowCursor',
    'Statement',
    'ExecuteBatch',
    'ExecuteBatchResult',
    'AsciiDocFormatter',
    'format_bytes',
]
