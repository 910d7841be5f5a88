"""
PiCheck errors - the single failure type raised by every query.
"""

from typing import Optional


class QueryError(Exception):
    """
    Raised when connecting, running a command or parsing its output fails.

    The ``reason`` attribute tells transport problems apart from parse
    problems without a class hierarchy:

        try:
            service.query_uptime()
        except QueryError as e:
            if e.reason == QueryError.TIMEOUT:
                ...
    """

    CONNECTION_FAILED = "connection_failed"
    AUTHENTICATION_FAILED = "authentication_failed"
    NOT_CONNECTED = "not_connected"
    COMMAND_FAILED = "command_failed"
    TIMEOUT = "timeout"
    PARSE_FAILED = "parse_failed"
    PRIVILEGE_FAILED = "privilege_failed"

    def __init__(self, message: str, reason: str = COMMAND_FAILED, command: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.command = command

    def __str__(self) -> str:
        msg = super().__str__()
        if self.command:
            return f"{msg} (command: {self.command})"
        return msg

    @classmethod
    def parse_failed(cls, what: str, output: str) -> "QueryError":
        """Build a parse failure that quotes the start of the offending output."""
        snippet = output.strip().replace("\n", "\\n")
        if len(snippet) > 80:
            snippet = snippet[:77] + "..."
        return cls(f"Could not parse {what} from output: '{snippet}'", reason=cls.PARSE_FAILED)
