"""Logging infrastructure with structured JSON logging."""

import logging
import json
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

# Structured fields copied from log records into JSON output
STRUCTURED_FIELDS = ('environment', 'run_id', 'resource', 'service', 'command')

LEVEL_NAMES = {
    'error': logging.ERROR,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG,
    'trace': TRACE,
}


def parse_log_level(name: Optional[str]) -> int:
    """Convert a level name to a logging level, defaulting to INFO."""
    if not name:
        return logging.INFO
    return LEVEL_NAMES.get(name.lower(), logging.INFO)


class SensitiveDataFilter(logging.Filter):
    """Masks credentials and passwords in log messages."""

    PATTERNS = [
        (re.compile(r'(AWS_ACCESS_KEY_ID=)([A-Z0-9]{20})'), r'\1' + '*' * 20),
        (re.compile(r'(AWS_SECRET_ACCESS_KEY=)([A-Za-z0-9/+]{40})'), r'\1' + '*' * 40),
        (re.compile(r'(password=|PASSWORD=|Password=)([^,\s]+)'), r'\1********'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_sensitive_info(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def mask_sensitive_info(message: str) -> str:
    """Replace known secret patterns in a message."""
    for pattern, replacement in SensitiveDataFilter.PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs logs as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    COLORS = {
        'TRACE': '\033[90m',    # Grey
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console.

        Args:
            record: The log record to format

        Returns:
            Formatted log string, colored when enabled
        """
        if self.use_colors:
            color = self.COLORS.get(record.levelname, '')
            level = f"{color}{record.levelname:8}{self.RESET}"
        else:
            level = f"{record.levelname:8}"

        timestamp = datetime.now().strftime('%H:%M:%S')
        message = record.getMessage()

        if hasattr(record, 'resource'):
            message = f"[{record.resource}] {message}"
        elif hasattr(record, 'service'):
            message = f"[{record.service}] {message}"

        return f"{timestamp} {level} {message}"


def setup_logging(
    log_level: str = 'info',
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> None:
    """Setup logging infrastructure.

    Args:
        log_level: Logging level (error, warn, info, debug, trace)
        log_file: Optional path of a JSON-lines log file
        use_colors: Whether console output uses ANSI colors
    """
    level = parse_log_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    sensitive_filter = SensitiveDataFilter()

    # Console output goes to stderr so stdout stays clean for reports
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
    console_handler.addFilter(sensitive_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(min(level, logging.DEBUG))
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(sensitive_filter)
        root_logger.addHandler(file_handler)
        root_logger.setLevel(min(level, logging.DEBUG))

    # Reduce noise from boto3 and other libraries
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class RunLoggerAdapter(logging.LoggerAdapter):
    """Logger carrying structured fields for one verification run.

    Fields are attached to every record, so the JSON formatter emits them and
    the console formatter can prefix the resource name.
    """

    def __init__(self, logger: logging.Logger, **fields: Any):
        super().__init__(logger, dict(fields))

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs

    def with_fields(self, **fields: Any) -> 'RunLoggerAdapter':
        """Return a new adapter with additional fields."""
        merged: Dict[str, Any] = dict(self.extra)
        merged.update(fields)
        return RunLoggerAdapter(self.logger, **merged)

    def trace(self, msg, *args, **kwargs):
        self.log(TRACE, msg, *args, **kwargs)


def as_run_logger(logger: Optional[logging.Logger], name: str) -> RunLoggerAdapter:
    """Wrap an injected logger (or the module logger) in a RunLoggerAdapter."""
    if isinstance(logger, RunLoggerAdapter):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        return RunLoggerAdapter(logger.logger, **(logger.extra or {}))
    return RunLoggerAdapter(logger or get_logger(name))
