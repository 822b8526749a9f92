"""Custom exception hierarchy for the CS2 log parser.

Exception tree:
    LogParserError
    +-- NotDecodable         (line has no usable JSON envelope / log sentinel)
    +-- ParserContractError  (caller broke the parse_line contract)
    +-- SchemaError          (event store is missing tables after migration)
"""

from typing import Optional


class LogParserError(Exception):
    """Base exception for all CS2 log parser errors."""

    def __init__(
        self,
        message: str,
        *,
        line_index: Optional[int] = None,
    ):
        self.line_index = line_index
        super().__init__(message)


class NotDecodable(LogParserError):
    """The raw line could not be unwrapped into a server log line.

    Expected noise (startup banners, blank lines, container output) --
    callers skip the line and move on.
    """

    pass


class ParserContractError(LogParserError):
    """The driver called the parser with an invalid buffer or index.

    Distinct from ordinary parse noise: this signals a programming error
    in the caller, not a problem with the log data.
    """

    pass


class SchemaError(LogParserError):
    """The event store database lacks the tables the repository writes to.

    Raised after migrations have run, typically because the migrations
    directory was not found or an older database was opened.
    """

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"event store is missing tables: {', '.join(missing)}")
