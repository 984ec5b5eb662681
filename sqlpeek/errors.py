"""Failure taxonomy for a single sqlpeek invocation.

Every failure is terminal: it is reported once on stderr and mapped to a
distinct exit status by ``sqlpeek.cli.main``.
"""

from __future__ import annotations


class SqlPeekError(Exception):
    """Base class for all errors that end an invocation."""

    stage = "internal"
    exit_code = 1


class UsageError(SqlPeekError):
    """Wrong number of command-line arguments."""

    stage = "usage"
    exit_code = 2


class ConfigError(SqlPeekError):
    """Presets file missing, unreadable, unparsable or invalid."""

    stage = "config"
    exit_code = 3


class ProfileNotFound(SqlPeekError):
    """No preset with the requested name."""

    stage = "profile"
    exit_code = 4


class ConnectionFailure(SqlPeekError):
    """Database could not be opened or attached."""

    stage = "connection"
    exit_code = 5


class QueryFailure(SqlPeekError):
    """The engine rejected or failed to execute the query."""

    stage = "query"
    exit_code = 6


class AllocationFailure(SqlPeekError):
    """Not enough memory to materialize the result."""

    stage = "allocation"
    exit_code = 7
