"""
Build logging: a JSON-lines file per run plus a text or JSON stream.

Component code logs through ``structlog.get_logger(__name__)``; events are
rendered into stdlib ``LogRecord`` keyword fields so both formatters see them.
``correlation_scope(stage=...)`` tags every record emitted inside a stage.
Only one setup is active at a time; a new ``setup_logging`` closes the old one.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final, TextIO

import structlog

REDACTED: Final[str] = "***REDACTED***"
LOGGER_NAME: Final[str] = "droid_orchestrator"
LOG_FILENAME: Final[str] = "build.jsonl"

# Flags whose next argv element is a password.
_SECRET_FLAGS: Final[frozenset[str]] = frozenset(
    {"-storepass", "-keypass", "--ks-pass", "--key-pass"}
)
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    {*vars(logging.makeLogRecord({})), "message", "asctime"}
)

_stage_context: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "droid_correlation", default=()
)
_active_lock = threading.Lock()
_active: LoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how one build invocation logs."""

    run_id: str
    log_dir: Path | str | None = None
    logger_name: str = LOGGER_NAME
    level: int | str = "INFO"
    log_format: str = "text"
    log_filename: str = LOG_FILENAME
    stream: TextIO | None = None


class _JsonLineFormatter(logging.Formatter):
    def __init__(self, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": self._run_id,
            **dict(_stage_context.get()),
        }
        fields = _extra_fields(record)
        if fields:
            event["fields"] = fields
        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class _TextFormatter(logging.Formatter):
    """``[stage] event key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        stage = dict(_stage_context.get()).get("stage")
        parts = [f"[{stage}] {record.getMessage()}" if stage else record.getMessage()]
        parts.extend(
            f"{key}={_text_value(value)}" for key, value in sorted(_extra_fields(record).items())
        )
        line = " ".join(parts)
        if record.exc_info is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class LoggingHandle:
    """Handlers installed by one ``setup_logging`` call."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        run_id: str,
        log_path: Path | None,
        handlers: tuple[logging.Handler, ...],
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.log_path = log_path
        self._handlers = handlers
        self._closed = False

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self) -> None:
        for handler in self._handlers:
            handler.flush()

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        for handler in self._handlers:
            handler.flush()
            self.logger.removeHandler(handler)
            handler.close()


def setup_logging(config: LoggingConfig) -> LoggingHandle:
    """Install stream and file handlers and route ``structlog`` through them."""

    run_id = config.run_id.strip()
    if not run_id:
        raise ValueError("run_id must not be empty")
    if config.log_format not in {"json", "text"}:
        raise ValueError(f"unsupported log format {config.log_format!r}")
    level = _log_level(config.level)
    shutdown_logging()

    json_formatter = _JsonLineFormatter(run_id)
    stream_handler = logging.StreamHandler(config.stream or sys.stderr)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(
        json_formatter if config.log_format == "json" else _TextFormatter()
    )
    handlers: list[logging.Handler] = [stream_handler]

    log_path: Path | None = None
    if config.log_dir is not None:
        log_path = Path(config.log_dir) / run_id / config.log_filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(json_formatter)
        handlers.append(file_handler)

    logger = logging.getLogger(config.logger_name)
    logger.setLevel(logging.DEBUG if log_path is not None else level)
    logger.propagate = False
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    for handler in handlers:
        logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    global _active
    handle = LoggingHandle(
        logger=logger, run_id=run_id, log_path=log_path, handlers=tuple(handlers)
    )
    with _active_lock:
        _active = handle
    return handle


def shutdown_logging(handle: LoggingHandle | None = None) -> None:
    """Flush and close ``handle``, or the active handle when none is given."""

    global _active
    with _active_lock:
        target = handle or _active
        if target is _active:
            _active = None
    if target is not None:
        target.shutdown()


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields such as ``stage`` to records logged inside the block.

    A ``None`` value unbinds the field for the duration of the block.
    """

    bound = dict(_stage_context.get())
    for key, value in fields.items():
        if value is None:
            bound.pop(key, None)
        elif value.strip():
            bound[key] = value.strip()
        else:
            raise ValueError(f"correlation value for {key!r} must not be empty")
    token = _stage_context.set(tuple(bound.items()))
    try:
        yield
    finally:
        _stage_context.reset(token)


def redact_argv(argv: Sequence[str]) -> list[str]:
    """Return ``argv`` with the value after each password flag masked."""

    return [
        REDACTED if index and argv[index - 1] in _SECRET_FLAGS else item
        for index, item in enumerate(argv)
    ]


def _log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return level


def _utc_timestamp(created: float) -> str:
    moment = datetime.fromtimestamp(created, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: _jsonable(value)
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
    }


def _jsonable(value: object) -> Any:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_jsonable(item) for item in value), key=str)
    return repr(value)


def _text_value(value: Any) -> str:
    if isinstance(value, str) and value and " " not in value:
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


__all__ = [
    "LoggingConfig",
    "LoggingHandle",
    "correlation_scope",
    "redact_argv",
    "setup_logging",
    "shutdown_logging",
]
