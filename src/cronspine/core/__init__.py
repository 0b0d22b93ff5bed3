"""Core primitives: errors, logging, settings, storage connections, events."""

from cronspine.core.connection import ConnectionInfo, create_connection
from cronspine.core.errors import (
    ConfigError,
    CronSpineError,
    DatabaseError,
    ErrorCategory,
    ParseError,
    UnknownJobError,
)
from cronspine.core.protocols import Connection, ScheduledJob
from cronspine.core.schema import create_tables
from cronspine.core.settings import CronSpineSettings

__all__ = [
    "Connection",
    "ConnectionInfo",
    "ConfigError",
    "CronSpineError",
    "CronSpineSettings",
    "DatabaseError",
    "ErrorCategory",
    "ParseError",
    "ScheduledJob",
    "UnknownJobError",
    "create_connection",
    "create_tables",
]
