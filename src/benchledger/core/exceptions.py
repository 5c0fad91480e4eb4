"""Custom exceptions for benchledger.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchLedgerError for easy catching.
"""

from __future__ import annotations

from enum import Enum


class BenchLedgerError(Exception):
    """Base exception for all benchledger errors.

    All custom exceptions in benchledger inherit from this class,
    making it easy to catch every failure on the ingest path.

    Example:
        >>> try:
        ...     await history.ingest("cargo", entry)
        ... except BenchLedgerError as e:
        ...     print(f"benchledger error: {e}")
    """


class ParseErrorReason(str, Enum):
    """Why raw benchmark output could not be parsed."""

    UNSUPPORTED_TOOL = "unsupported_tool"
    MALFORMED_INPUT = "malformed_input"


class ParseError(BenchLedgerError):
    """Raised when raw harness output cannot be turned into results.

    The single ingest is rejected and the store is left untouched.

    Attributes:
        reason: Whether the tool is unknown or its output is malformed.
        tool: The tool identifier that was requested.

    Example:
        >>> raise ParseError(ParseErrorReason.UNSUPPORTED_TOOL, "nosuchtool", "no parser registered")
    """

    def __init__(self, reason: ParseErrorReason, tool: str, detail: str) -> None:
        """Initialize ParseError.

        Args:
            reason: Category of the failure.
            tool: Tool identifier being parsed.
            detail: Human-readable description, naming the offending record.
        """
        self.reason = reason
        self.tool = tool
        self.detail = detail
        super().__init__(f"Cannot parse '{tool}' output ({reason.value}): {detail}")

    @classmethod
    def unsupported(cls, tool: str) -> ParseError:
        """Build an UNSUPPORTED_TOOL error for an unknown tool id."""
        return cls(ParseErrorReason.UNSUPPORTED_TOOL, tool, "no parser registered for this tool")

    @classmethod
    def malformed(cls, tool: str, detail: str) -> ParseError:
        """Build a MALFORMED_INPUT error."""
        return cls(ParseErrorReason.MALFORMED_INPUT, tool, detail)


class OutOfOrderError(BenchLedgerError):
    """Raised when an entry would break the chronological order of a ledger.

    Typically signals old CI runs being replayed out of sequence.
    Nothing is mutated when this is raised.
    """

    def __init__(self, tool: str, commit_id: str, date: int, last_update: int) -> None:
        self.tool = tool
        self.commit_id = commit_id
        self.date = date
        self.last_update = last_update
        super().__init__(
            f"Entry for commit {commit_id} in '{tool}' is dated {date}, "
            f"earlier than the ledger's last update {last_update}"
        )


class DuplicateCommitError(BenchLedgerError):
    """Reported when a commit is already present in a ledger.

    This is not fatal: without overwrite, re-ingesting the same CI run is a
    no-op and this error is returned as a warning rather than raised.
    """

    def __init__(self, tool: str, commit_id: str) -> None:
        self.tool = tool
        self.commit_id = commit_id
        super().__init__(f"Commit {commit_id} is already recorded in '{tool}'")


class LoadError(BenchLedgerError):
    """Raised when a persisted store exists but cannot be read."""


class PersistenceError(BenchLedgerError):
    """Raised when saving the store fails.

    The in-memory mutation is discarded; callers should retry the whole run.
    """


class LedgerNotFoundError(BenchLedgerError):
    """Raised when no ledger exists for a tool."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"No ledger recorded for '{tool}'")


class ConfigurationError(BenchLedgerError):
    """Raised when configuration is invalid or missing.

    Invalid thresholds, direction overrides or retention caps fail fast,
    before any ingest is accepted.

    Example:
        >>> raise ConfigurationError("retentionCap must be a positive integer, got 0")
    """


class RetryableError(BenchLedgerError):
    """Raised for transient failures where retrying the whole run is safe."""


class StoreLockedError(RetryableError):
    """Raised when the store's write lock could not be acquired in time."""

    def __init__(self, path: str, timeout: float | None) -> None:
        self.path = path
        self.timeout = timeout
        super().__init__(f"Store {path} is locked by another writer (waited {timeout or 0:g}s)")
