"""
Logging utilities for the Draft Assistant

Human-readable console output plus structured JSON files. Context such as the
requesting user and draft is carried across awaits with contextvars so that
concurrent requests never see each other's fields.
"""
import contextvars
import json
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Dict, Any, Optional, Union

from config import get_config

# Context variable for request tracking across async calls
log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar('log_context', default={})

APP_LOGGER_NAME = 'draft_assistant'

JSONValue = Union[str, int, float, bool, None, dict[str, Any], list[Any]]

# LogRecord attributes that never belong in the 'extra' block
_RESERVED_RECORD_KEYS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message'
}


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record) -> str:
        log_obj: dict[str, JSONValue] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        if record.funcName:
            log_obj['function'] = record.funcName
        if record.lineno:
            log_obj['line'] = record.lineno

        if record.exc_info:
            exc_type, exc_value = record.exc_info[0], record.exc_info[1]
            log_obj['exception'] = {
                'type': exc_type.__name__ if exc_type else 'Unknown',
                'message': str(exc_value) if exc_value else 'No message',
                'traceback': self.formatException(record.exc_info)
            }

        context = log_context.get({})
        if context:
            log_obj['context'] = dict(context)
            if 'trace_id' in context:
                log_obj['trace_id'] = context['trace_id']

        extra_data = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS:
                continue
            try:
                json.dumps(value)
                extra_data[key] = value
            except (TypeError, ValueError):
                extra_data[key] = str(value)

        if extra_data:
            log_obj['extra'] = extra_data

        return json.dumps(log_obj, ensure_ascii=False)


class ContextualLogger:
    """
    Logger wrapper that attaches keyword context to every record.

    Keyword arguments passed to the level methods end up in the record's
    ``extra`` block, and an operation started with ``start_operation`` adds
    a trace id to the shared log context and a running duration to records.
    """

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)
        self._start_time: Optional[float] = None

    def start_operation(self, operation_name: Optional[str] = None) -> str:
        """
        Start timing an operation and generate a trace ID.

        Args:
            operation_name: Optional name for the operation being tracked

        Returns:
            Generated trace ID for this operation
        """
        self._start_time = time.time()
        trace_id = uuid.uuid4().hex[:8]

        context = dict(log_context.get({}))
        context['trace_id'] = trace_id
        if operation_name:
            context['operation'] = operation_name
        log_context.set(context)

        return trace_id

    def end_operation(self, trace_id: str, operation_result: str = "completed") -> None:
        """
        End an operation and log its final duration.

        Args:
            trace_id: The trace ID returned by start_operation
            operation_result: Result status ("completed", "failed", "cancelled")
        """
        if self._start_time is None:
            self.warning("end_operation called without corresponding start_operation")
            return

        duration_ms = int((time.time() - self._start_time) * 1000)
        self.info(f"Operation {operation_result}",
                  trace_id=trace_id,
                  final_duration_ms=duration_ms,
                  operation_result=operation_result)

        context = dict(log_context.get({}))
        context.pop('operation', None)
        if context.get('trace_id') == trace_id:
            context.pop('trace_id', None)
        log_context.set(context)

        self._start_time = None

    def _with_duration(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        if self._start_time:
            kwargs['duration_ms'] = int((time.time() - self._start_time) * 1000)
        return kwargs

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, extra=self._with_duration(kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(message, extra=self._with_duration(kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, extra=self._with_duration(kwargs))

    def error(self, message: str, error: Optional[Exception] = None, **kwargs):
        """
        Log error message with context and exception information.

        Args:
            message: Error message
            error: Optional exception object
            **kwargs: Additional context
        """
        kwargs = self._with_duration(kwargs)
        if error:
            kwargs['error'] = {
                'type': type(error).__name__,
                'message': str(error)
            }
            self.logger.error(message, exc_info=error, extra=kwargs)
        else:
            self.logger.error(message, extra=kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback and context."""
        self.logger.exception(message, extra=self._with_duration(kwargs))


def set_draft_context(
    user_id: Optional[str] = None,
    draft_id: Optional[str] = None,
    team_number: Optional[int] = None,
    operation: Optional[str] = None,
    **additional_context
):
    """
    Set draft-specific context for logging.

    Args:
        user_id: Opaque authenticated user identity
        draft_id: Draft the request is operating on
        team_number: Seat the request acts for
        operation: Operation name (e.g., 'make_pick')
        **additional_context: Any additional context to include
    """
    context = dict(log_context.get({}))

    if user_id:
        context['user_id'] = str(user_id)
    if draft_id:
        context['draft_id'] = str(draft_id)
    if team_number is not None:
        context['team_number'] = team_number
    if operation:
        context['operation'] = operation

    context.update(additional_context)
    log_context.set(context)


def clear_context():
    """Clear the current logging context."""
    log_context.set({})


def get_contextual_logger(logger_name: str) -> ContextualLogger:
    """
    Get a contextual logger instance.

    Args:
        logger_name: Name for the logger (typically __name__)

    Returns:
        ContextualLogger instance
    """
    return ContextualLogger(logger_name)


def setup_logging() -> logging.Logger:
    """Configure hybrid logging: human-readable console + structured JSON files."""
    config = get_config()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if root_logger.handlers:
        # Already configured (or a test runner owns the root logger)
        return logging.getLogger(APP_LOGGER_NAME)

    os.makedirs(config.log_dir, exist_ok=True)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))

    json_handler = RotatingFileHandler(
        os.path.join(config.log_dir, f'{APP_LOGGER_NAME}.json'),
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=5
    )
    json_handler.setFormatter(JSONFormatter())

    # Library loggers (sqlalchemy, aiohttp) and our module loggers all
    # propagate to root, so handlers are attached there once.
    root_logger.addHandler(console_handler)
    root_logger.addHandler(json_handler)

    return logging.getLogger(APP_LOGGER_NAME)
