"""Structured logging setup for the ABX client."""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional

from ..config.settings import LoggingConfig

_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'message', 'getMessage',
])


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""

        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Extra fields (service name, ctx_* context)
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Text formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as colored text."""

        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')
        level = record.levelname

        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.COLORS['RESET']}"

        formatted = f"{timestamp} [{level}] {record.name}: {record.getMessage()}"

        context = " ".join(
            f"{key[4:]}={value}" for key, value in record.__dict__.items() if key.startswith("ctx_")
        )
        if context:
            formatted += f" ({context})"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


class ServiceContextFilter(logging.Filter):
    """Stamp every record with the service name and the exchange address."""

    def __init__(self, service_name: str, server: Optional[str] = None):
        super().__init__()
        self.service_name = service_name
        self.server = server

    def filter(self, record):
        record.service = self.service_name
        if self.server is not None:
            record.server = self.server
        return True


def setup_logging(
    config: LoggingConfig,
    service_name: str = "abx-client",
    server: Optional[str] = None,
) -> None:
    """
    Setup logging configuration for the client.

    Args:
        config: Logging configuration
        service_name: Name of the service for log context
        server: host:port of the exchange, added to every record when set
    """

    if config.format.lower() == 'json':
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    if config.output.lower() == 'stdout':
        handler = logging.StreamHandler(sys.stdout)
    elif config.output.lower() == 'stderr':
        handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.FileHandler(config.output)

    handler.setFormatter(formatter)
    handler.addFilter(ServiceContextFilter(service_name, server))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger('asyncio').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging configured: level={config.level}, format={config.format}, "
        f"output={config.output}, service={service_name}"
    )


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log a message with additional context."""
    extra = {f"ctx_{key}": value for key, value in context.items()}
    logger.log(level, message, extra=extra)


def log_performance(logger: logging.Logger, operation: str, duration_ms: float, **context):
    """Log phase timing."""
    log_with_context(
        logger,
        logging.INFO,
        f"Performance: {operation} completed in {duration_ms:.2f}ms",
        operation=operation,
        duration_ms=duration_ms,
        **context
    )


def log_error_with_context(logger: logging.Logger, error: Exception, operation: str, **context):
    """Log an error with full context and exception details."""

    error_code = getattr(error, 'error_code', None)
    details = getattr(error, 'details', None)

    log_with_context(
        logger,
        logging.ERROR,
        f"Error in {operation}: {str(error)}",
        operation=operation,
        error_type=type(error).__name__,
        error_message=str(error),
        error_code=error_code,
        error_details=details,
        **context
    )

    logger.debug(f"Full traceback for {operation}:", exc_info=error)
