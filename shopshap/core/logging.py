"""
shopshap/core/logging.py

Purpose: Logging configuration

- JSON lines in production, coloured one-liners elsewhere
- Verification context (phone, country, reason) attached to records
- Phone numbers never reach the output unmasked
"""

import logging
import re
import sys
import json
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from shopshap.core.config import settings

CONTEXT_FIELDS = ("phone", "country", "reason")

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

# E.164-looking numbers, with or without the whatsapp: scheme
_PHONE_IN_TEXT = re.compile(r"(?<![\w*])\+?\d{9,15}\b", re.ASCII)


def mask_phone(phone: Optional[str]) -> str:
    """
    Masks a phone number for logs, keeping only the last 4 digits.

    Example: +221701234567 -> *********4567
    """
    if not phone:
        return "unknown"
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]


class PhoneMaskingFilter(logging.Filter):
    """
    Masks phone numbers that slipped into a log message unmasked,
    e.g. through a third-party exception text.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _PHONE_IN_TEXT.sub(lambda m: mask_phone(m.group(0)), message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for the production log pipeline."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": "shopshap-verification",
            "environment": settings.ENVIRONMENT,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        log_data.update({
            field: getattr(record, field)
            for field in CONTEXT_FIELDS
            if hasattr(record, field)
        })

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class DevelopmentFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        short_name = record.name.replace("shopshap.", "", 1)

        line = f"{color}{timestamp} {record.levelname[0]}{self.RESET} {short_name}: {record.getMessage()}"

        context = " ".join(
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if hasattr(record, field)
        )
        if context:
            line += f"  ({context})"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def setup_logging():
    """
    Installs a single stdout handler on the root logger.
    Safe to call more than once; earlier handlers are replaced.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())
    handler.addFilter(PhoneMaskingFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # httpx logs every Twilio request URL at INFO
    for noisy in ("httpx", "httpcore", "motor", "pymongo", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger("shopshap")
    logger.info(f"Logging configured (level={settings.LOG_LEVEL}, environment={settings.ENVIRONMENT})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger under the "shopshap" namespace.

    Module names already inside the package (shopshap.services.x) are used
    as is; anything else (utils.x) is nested under shopshap.
    """
    if name.startswith("shopshap"):
        return logging.getLogger(name)
    return logging.getLogger(f"shopshap.{name}")


class LogContext:
    """
    Attaches fields to every record created inside the block.

    Fields live in a ContextVar, so each asyncio task sees only its own
    context even when blocks of concurrent requests interleave.

    Usage:
        with LogContext(phone=mask_phone(number), country="SN"):
            logger.info("Sending verification code")
    """

    def __init__(self, **fields):
        self.fields = fields
        self._token: Optional[Token] = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
        self._token = None


def _install_context_factory():
    base_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        record.__dict__.update(_log_context.get())
        return record

    logging.setLogRecordFactory(record_factory)


# Installed once per process
_install_context_factory()
