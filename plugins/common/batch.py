"""
Generic execute batch for data-modification statements.

An ExecuteBatch collects rows of attribute values and runs them through one
statement shape per row. The SQL text itself comes from a statement builder
supplied by the engine plugin, so the batch stays engine-agnostic.

Statement builder contract:
    builder(session, attribute_values, options) -> Statement

The builder receives the current row so it can adapt the SQL to it (for
example IS NULL for null key values). When two consecutive rows produce the
same SQL, the prepared statement is reused and only rebound.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from plugins.common.exceptions import CommandExecutionError
from plugins.common.value_handlers import get_value_handler

logger = logging.getLogger(__name__)


class ExecuteBatchResult:
    """Outcome of ExecuteBatch.execute()."""

    def __init__(self):
        self.rows_processed = 0
        self.rows_updated = 0
        self.statements_prepared = 0
        self.queries = []

    def to_dict(self):
        return {
            'rows_processed': self.rows_processed,
            'rows_updated': self.rows_updated,
            'statements_prepared': self.statements_prepared,
            'queries': list(self.queries),
        }


class ExecuteBatch:
    """
    Row batch bound positionally against a fixed attribute list.

    Args:
        attributes: Attributes in binding order; row values must follow the same order
        statement_builder: Callable producing the prepared Statement for a row
        keys_receiver: Optional callable receiving generated keys (not produced by
                       every engine; kept for interface parity)
    """

    def __init__(self, attributes: Sequence, statement_builder: Callable, keys_receiver=None):
        self.attributes = list(attributes)
        self.handlers = [get_value_handler(attribute) for attribute in self.attributes]
        self.statement_builder = statement_builder
        self.keys_receiver = keys_receiver
        self.values: List[List[Any]] = []

    def add(self, attribute_values: Sequence[Any]):
        """
        Adds one row.

        Raises:
            ValueError: If the row width differs from the attribute list
        """
        if len(attribute_values) != len(self.attributes):
            raise ValueError(
                f"Row has {len(attribute_values)} value(s) but the batch binds "
                f"{len(self.attributes)} attribute(s)"
            )
        self.values.append(list(attribute_values))

    def bind_statement(self, statement, attribute_values):
        for index, handler in enumerate(self.handlers):
            handler.bind_value_object(statement.session, statement, self.attributes[index], index,
                                      attribute_values[index])

    def execute(self, session, options: Optional[Dict[str, Any]] = None) -> ExecuteBatchResult:
        """
        Prepares, binds and executes every row.

        Raises:
            CommandExecutionError: On any preparation, binding or execution failure
        """
        options = options or {}
        result = ExecuteBatchResult()
        statement = None
        query = None
        try:
            for row_values in self.values:
                candidate = self._prepare(session, row_values, options)
                if statement is not None and candidate.query == query:
                    candidate.close()
                    statement.clear_parameters()
                else:
                    if statement is not None:
                        statement.close()
                    statement = candidate
                    query = candidate.query
                    result.statements_prepared += 1
                    result.queries.append(query)

                try:
                    self.bind_statement(statement, row_values)
                    result.rows_updated += statement.execute_update()
                except CommandExecutionError:
                    raise
                except Exception as e:
                    logger.error(f"Batch statement failed: {e} (source: {statement.source})")
                    logger.debug(f"Failed statement: {statement.query}")
                    raise CommandExecutionError(f"Error executing statement: {e}", statement.query) from e
                result.rows_processed += 1
        finally:
            if statement is not None:
                statement.close()

        logger.info(
            f"Batch executed: {result.rows_processed} row(s), "
            f"{result.statements_prepared} statement(s) prepared"
        )
        return result

    def generate_persist_actions(self, session, options: Optional[Dict[str, Any]] = None) -> List[str]:
        """Returns the SQL each row would run, without executing anything."""
        options = options or {}
        actions = []
        for row_values in self.values:
            statement = self._prepare(session, row_values, options)
            actions.append(statement.query)
            statement.close()
        return actions

    def close(self):
        self.values = []

    def _prepare(self, session, row_values, options):
        try:
            return self.statement_builder(session, row_values, options)
        except CommandExecutionError:
            raise
        except Exception as e:
            logger.error(f"Could not prepare batch statement: {e}")
            raise CommandExecutionError(f"Error preparing statement: {e}") from e
