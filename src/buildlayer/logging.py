import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Callable, List

import structlog


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure structlog/standard logging bridge."""

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind contextual fields for downstream logs."""

    logger = structlog.get_logger()
    return logger.bind(**kwargs)


class LogLevel(StrEnum):
    """Levels written to a workflow run log."""

    VERBOSE = "VERBOSE"
    ERROR = "ERROR"
    WARNING = "WARNING"
    STDOUT = "STDOUT"


_STRUCTLOG_METHODS = {
    LogLevel.VERBOSE: "debug",
    LogLevel.STDOUT: "info",
    LogLevel.WARNING: "warning",
    LogLevel.ERROR: "error",
}

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LogRecord:
    timestamp: str
    function_name: str
    level: LogLevel
    message: str

    def format(self) -> str:
        return f"[{self.timestamp}][{self.function_name}][{self.level.value}]{self.message}"


class WorkflowLogSink:
    """
    Append-only run log, one line per event:

        [2024-05-01 10:32:07][NewVM][STDOUT]vm-1042

    Every line is flushed as written and mirrored to structlog.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] = datetime.now):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.records: List[LogRecord] = []
        self._clock = clock
        self._logger = structlog.get_logger().bind(log=str(self.path))

    def write(self, function_name: str, level: LogLevel, message: Any) -> LogRecord:
        text = "" if message is None else str(message)
        record = LogRecord(
            timestamp=self._clock().strftime(TIMESTAMP_FORMAT),
            function_name=function_name,
            level=LogLevel(level),
            message=text.rstrip("\r\n"),
        )
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(record.format() + "\n")
            f.flush()
        self.records.append(record)
        getattr(self._logger, _STRUCTLOG_METHODS[record.level])(
            "workflow_log", function=function_name, level=record.level.value, message=record.message
        )
        return record

    def verbose(self, function_name: str, message: Any) -> LogRecord:
        return self.write(function_name, LogLevel.VERBOSE, message)

    def stdout(self, function_name: str, message: Any) -> LogRecord:
        return self.write(function_name, LogLevel.STDOUT, message)

    def warning(self, function_name: str, message: Any) -> LogRecord:
        return self.write(function_name, LogLevel.WARNING, message)

    def error(self, function_name: str, message: Any) -> LogRecord:
        return self.write(function_name, LogLevel.ERROR, message)

    def lines(self, level: LogLevel | None = None) -> List[str]:
        """Messages written so far, optionally filtered by level."""
        return [r.message for r in self.records if level is None or r.level == level]
