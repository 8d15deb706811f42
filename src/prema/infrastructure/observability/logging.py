"""Logging setup: JSON or compact console output, tagged with correlation IDs."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from types import TracebackType
from typing import Any

from pythonjsonlogger import jsonlogger

# Loggers that chat at INFO on every request. A 3-second chat poll would bury
# everything else under them.
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "aiosqlite", "asyncio")

# Hey future me, a correlation ID groups the log lines of ONE user action: a login
# (token exchange + /auth/me + push registration) or one chat poll cycle (fetch + N
# read receipts). ContextVars are per-task in asyncio, so two pollers running side by
# side keep separate IDs.
_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "prema_correlation_id", default=""
)


def get_correlation_id() -> str:
    """Current correlation ID, "" outside of any tagged action."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None, prefix: str = "") -> str:
    """Tag the current task's log lines.

    Args:
        correlation_id: ID to use; a random one is generated when None
        prefix: Readable label for generated IDs, e.g. "login" -> "login-3f2a9c0d1b7e"

    Returns:
        The ID now in effect
    """
    if correlation_id is None:
        random_part = uuid.uuid4().hex[:12]
        correlation_id = f"{prefix}-{random_part}" if prefix else random_part
    _correlation_id.set(correlation_id)
    return correlation_id


class ContextFilter(logging.Filter):
    """Stamps the correlation ID and app name onto every record."""

    def __init__(self, app_name: str = "prema") -> None:
        super().__init__()
        self.app_name = app_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.app = self.app_name
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """The exception and everything behind it, root cause first."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return list(reversed(chain))


def _own_frames(tb: TracebackType | None) -> list[traceback.FrameSummary]:
    """Frames from the prema package only; library internals are noise here."""
    return [
        frame
        for frame in traceback.extract_tb(tb)
        if "site-packages" not in frame.filename and "prema" in Path(frame.filename).parts
    ]


class CompactExceptionFormatter(logging.Formatter):
    """Console formatter that prints exception chains as one line per exception.

    Hey future me - an ApiError is always raised "from" the httpx error, so a stock
    traceback shows two full stacks plus "The above exception was the direct cause...".
    This prints the chain root cause first, with only our own frames under each:

    12:00:03 │ WARNING │ prema.application.workers.message_poll_worker:181 │ ...
    ╰─► ConnectError: All connection attempts failed
    ╰─► ApiError: Failed to get messages
        prema_client.py:152 in _request
          raise ApiError(fallback) from e
    """

    def formatException(self, ei: Any) -> str:
        exc = ei[1]
        if exc is None:
            return ""

        lines: list[str] = []
        for link in _exception_chain(exc):
            lines.append(f"╰─► {type(link).__name__}: {link}")
            for frame in _own_frames(link.__traceback__):
                lines.append(f"    {Path(frame.filename).name}:{frame.lineno} in {frame.name}")
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line, for log shipping from desktop or server shells."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["line"] = record.lineno

        app = getattr(record, "app", None)
        if app:
            log_record["app"] = app
        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Listen future me, call this ONCE per process (client_lifespan does). It swaps out any
# handlers already on the root logger, so calling it again (tests, hot reload) never
# double-logs.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "prema",
) -> None:
    """Configure root logging for the client core.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names mean INFO)
        json_format: Emit JSON lines instead of the compact console format
        app_name: Value of the "app" field on every record
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(ContextFilter(app_name))
    if json_format:
        handler.setFormatter(
            CustomJsonFormatter(
                "%(timestamp)s %(level)s %(name)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
    else:
        handler.setFormatter(
            CompactExceptionFormatter(
                fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured (level=%s, json=%s, app=%s)", log_level, json_format, app_name
    )
