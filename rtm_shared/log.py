#!/usr/bin/env python3
"""
Logging for the RTM client.

Every module asks for its logger through get_logger(__name__). Records can
carry RTM context through extra= (stage, request_id, msg_type, channel),
which the formatters render as a "[stage=send id=3 msg=message]" prefix.

Development (RTM_ENV=dev, or under pytest) logs in colour to the console.
Anything else logs plain text to the console and to <RTM_LOG_DIR>/rtm.log.
"""

from __future__ import annotations
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional


_CONTEXT_FIELDS = (
    ('stage', 'stage'),
    ('request_id', 'id'),
    ('msg_type', 'msg'),
    ('channel', 'chan'),
)


class GenericFormatter(logging.Formatter):
    """Prefixes the message with whatever RTM context the record carries"""

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, '_rtm_prefixed', False):
            parts = [f"{label}={getattr(record, attr)}" for attr, label in _CONTEXT_FIELDS
                     if getattr(record, attr, None) not in (None, '')]
            if parts:
                record.msg = f"[{' '.join(parts)}] {record.msg}"
            record._rtm_prefixed = True
        return super().format(record)


class ColoredFormatter(GenericFormatter):
    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # other handlers share the record
            record.levelname = levelname


# names of loggers already given handlers by get_logger
_loggers_configured = set()
# set by set_log_level(); wins over RTM_LOG_LEVEL and the environment default
_level_override: Optional[str] = None


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Logger for ``name`` (usually __name__), configured on first use.

        logger = get_logger(__name__)
        logger.warning("Write failed", extra={"stage": "send", "request_id": 12})
    """
    logger = logging.getLogger(name)
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)
    return logger


def set_log_level(level: str) -> None:
    """Re-level every RTM logger, including ones created after this call"""
    global _level_override
    _level_override = level
    numeric = _get_log_level(level)
    for name in _loggers_configured:
        logging.getLogger(name).setLevel(numeric)


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    logger.setLevel(_get_log_level(level))
    logger.handlers.clear()

    if _is_development():
        _add_console_handler(logger, colored=True)
    else:
        _add_console_handler(logger, colored=False)
        _add_file_handler(logger)

    # handlers above already print it; the root logger would print it twice
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    level = level or _level_override or os.getenv('RTM_LOG_LEVEL')
    if level:
        return getattr(logging, level.upper(), logging.INFO)
    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    env = os.getenv('RTM_ENV', '').lower()
    if env in ('prod', 'production'):
        return False
    return env in ('dev', 'development') or 'pytest' in sys.modules


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stderr)
    if colored and sys.stderr.isatty() and os.getenv("TERM", "") != "dumb":
        handler.setFormatter(ColoredFormatter(fmt=fmt, datefmt='%H:%M:%S'))
    else:
        handler.setFormatter(GenericFormatter(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger) -> None:
    log_dir = Path(os.getenv('RTM_LOG_DIR', 'logs'))
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / "rtm.log")
    handler.setFormatter(GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    ))
    logger.addHandler(handler)


def configure_root_logging(level: str = "INFO") -> None:
    """
    Call once at startup. Sets up the root logger (third-party libraries such
    as websockets log there) and applies ``level`` to every RTM logger too.
    """
    _configure_logger(logging.getLogger(), level)
    set_log_level(level)


def log_rtm_message(logger: logging.Logger, level: str, message: str,
                    frame: Optional[Dict[str, Any]] = None,
                    **context: Any) -> None:
    """
    Log with context pulled out of a decoded frame dict, plus any extra fields.

        log_rtm_message(logger, "debug", "Received frame", frame=data, stage="receive")
    """
    extra_context: Dict[str, Any] = {}
    if frame:
        extra_context.update({
            'msg_type': frame.get('type') or ('ack' if 'reply_to' in frame else None),
            'request_id': frame.get('id', frame.get('reply_to')),
            'channel': frame.get('channel'),
        })
    extra_context.update(context)

    getattr(logger, level.lower())(message, extra=extra_context)
