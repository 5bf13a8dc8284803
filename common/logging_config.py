import logging
import os
import re
import sys
from contextvars import ContextVar, Token
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

NO_REQUEST_ID = '-'

_request_id: ContextVar[str] = ContextVar('request_id', default=NO_REQUEST_ID)

MASK = r'\1***MASKED***'

SENSITIVE_PATTERNS = [
    re.compile(r'((?:password|secret|api[_-]?key|encryption[_-]?key|token|authorization)["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE),
    re.compile(r'(bearer\s+)([^\s,}\'\"]+)', re.IGNORECASE),
    re.compile(r'(vlt_)([0-9a-f-]{8,})', re.IGNORECASE),
    re.compile(r'(/share/)([0-9a-f]{16,})', re.IGNORECASE),
]


def mask_sensitive(text: str) -> str:
    """Replace credentials, API keys, share tokens and key material with a mask."""
    for pattern in SENSITIVE_PATTERNS:
        text = pattern.sub(MASK, text)
    return text


def set_request_id(request_id: str) -> Token:
    """
    Bind a request id to the current context. Every record logged while it is
    bound carries it. Pass the returned token to reset_request_id when the
    request completes.
    """
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> str:
    return _request_id.get()


class RequestContextFilter(logging.Filter):
    """Stamp each record with the request id bound to the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask credentials, share tokens and key material in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_sensitive(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_value(arg) for arg in record.args)

        return True

    @staticmethod
    def _mask_value(value):
        if isinstance(value, str):
            return mask_sensitive(value)
        return value


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Installs one stdout handler on the component's logger. Records pass
    through RequestContextFilter and SensitiveDataFilter before formatting,
    so every line shows the active request id and no secrets.

    Args:
        component_name: Name of the component ('vault' or 'blobserver')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SensitiveDataFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name. Loggers under 'vault.' and 'blobserver.'
    write through the handler installed by setup_logging for their component.
    """
    return logging.getLogger(name)
