"""Data models for structured logging."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogContext(BaseModel):
    """Structured log context.

    All fields are optional to allow flexible usage.
    Additional fields can be added via extra="allow".
    """

    # Source
    logger_name: str | None = None
    module: str | None = None
    function: str | None = None
    line: int | None = None
    thread: int | None = None
    thread_name: str | None = None
    process: int | None = None

    # Cache entry
    cache_path: str | None = None
    scope: str | None = None

    # Status
    error_type: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}


class LogEntry(BaseModel):
    """Complete log entry with message and context."""

    level: LogLevel
    message: str
    context: LogContext
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}
