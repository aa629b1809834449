#!/usr/bin/env python3
"""
Logging Module for the vSphere datastore report.

The report itself is written to stdout, so every diagnostic goes to stderr
(and optionally a rotating file). Records carry the datacenter and cluster
being read, set with ``context()``, and slow inventory calls can be measured
with ``logger.timer()``.

Usage:
    from logger import context, get_logger, setup_logging

    setup_logging(level='INFO', log_format='json')
    logger = get_logger(__name__)

    with context(datacenter='DC01', cluster='Cluster01'):
        with logger.timer('Storage of cluster Cluster01'):
            ...
"""
import os
import sys
import time
import json
import logging
import logging.handlers
import threading
import contextlib
from datetime import datetime

DEFAULT_LOG_LEVEL = 'WARNING'
DEFAULT_LOG_FORMAT = 'standard'  # 'standard', 'json', or 'simple'
LOG_MAX_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

FORMATS = {
    'standard': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'simple': '%(levelname)s: %(message)s',
}

# Loggers that are chatty below WARNING
QUIET_LOGGERS = ('urllib3', 'pyVmomi', 'pyVmomi.VmomiSupport')

_RESET = '\033[0m'
LEVEL_COLORS = {
    logging.DEBUG: '\033[90m',
    logging.INFO: '\033[92m',
    logging.WARNING: '\033[93m',
    logging.ERROR: '\033[91m',
    logging.CRITICAL: '\033[1;91m',
}

# Attributes every LogRecord has; anything else was passed through ``extra``
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime', 'context'}

_local = threading.local()


class ColorFormatter(logging.Formatter):
    """Console formatter wrapping each line in the color of its level."""

    def __init__(self, fmt=None, datefmt=None, use_colors=True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record):
        line = super().format(record)
        color = LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{line}{_RESET}" if color else line


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with the run context and any extra fields."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        run_context = getattr(record, 'context', None)
        if run_context:
            entry['context'] = run_context

        entry.update((key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES)

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter attaching the current run context to every record."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get('extra') or {})
        extra['context'] = get_context()
        kwargs['extra'] = extra
        return msg, kwargs

    @contextlib.contextmanager
    def timer(self, operation_name):
        """Log how long the enclosed block took, at INFO."""
        started = time.monotonic()
        try:
            yield
        finally:
            duration_ms = (time.monotonic() - started) * 1000
            self.info(f"{operation_name} completed in {duration_ms:.2f}ms",
                      extra={'duration_ms': duration_ms, 'operation': operation_name})


def _make_formatter(log_format, use_colors):
    if log_format == 'json':
        return JsonFormatter()
    return ColorFormatter(FORMATS.get(log_format, FORMATS['standard']), use_colors=use_colors)


def setup_logging(level=None, log_format=None, log_file=None, use_colors=True, stream=None):
    """
    Configure the root logger for one run.

    Replaces any handler already installed, so calling it twice is safe.

    Args:
        level: Level name, e.g. 'INFO' (default: WARNING)
        log_format: 'standard', 'simple' or 'json'
        log_file: Optional path of a rotating log file
        use_colors: Whether console output is colorized
        stream: Console stream (default: sys.stderr)

    Returns:
        The configured root logger
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, (level or DEFAULT_LOG_LEVEL).upper(), logging.WARNING)
    log_format = log_format or DEFAULT_LOG_FORMAT
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(_make_formatter(log_format, use_colors))
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=LOG_MAX_SIZE, backupCount=LOG_BACKUP_COUNT
            )
        except OSError as e:
            root_logger.warning(f"Failed to set up file logging: {str(e)}")
        else:
            file_handler.setFormatter(_make_formatter(log_format, use_colors=False))
            root_logger.addHandler(file_handler)

    # pyVmomi's SOAP stub logs every request at DEBUG
    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name):
    """Logger for a module, wrapped so records carry the run context."""
    return ContextAdapter(logging.getLogger(name), {})


def get_context():
    """Copy of the context attributes of the current thread."""
    return dict(getattr(_local, 'context', {}))


@contextlib.contextmanager
def context(**kwargs):
    """
    Add context attributes (e.g. datacenter, cluster) for the enclosed block.

    Nested blocks extend the outer context; the outer values are restored on
    exit.
    """
    previous = get_context()
    _local.context = {**previous, **kwargs}
    try:
        yield
    finally:
        _local.context = previous
