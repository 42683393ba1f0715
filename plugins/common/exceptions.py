"""
Exception types shared by the database plugins.
"""


class CommandExecutionError(Exception):
    """
    Raised when a data-modification command cannot be prepared, bound or executed.

    The driver exception, when there is one, is chained as ``__cause__``.
    The SQL text is kept on the exception for error reporting.
    """

    def __init__(self, message, query=None):
        super().__init__(message)
        self.query = query
