"""
Structured Logging
==================

JSON lines in production, plain text in development.

Every record logged while an admin request is being served carries the
authenticated shop: ``get_current_admin`` binds it in a context variable and
``ShopContextFilter`` copies it onto records that don't already name a shop.
"""

import logging
import json
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Optional

SERVICE_NAME = "storefront-sections"

# Extra attributes copied onto JSON log lines when present on the record
CONTEXT_FIELDS = ("shop", "section", "plan", "theme_id")

_current_shop: ContextVar[Optional[str]] = ContextVar("current_shop", default=None)


def bind_shop(shop: str) -> Token:
    """Tag log records from the current request context with ``shop``."""
    return _current_shop.set(shop)


def current_shop() -> Optional[str]:
    return _current_shop.get()


class ShopContextFilter(logging.Filter):
    """Stamp the bound shop onto records; an explicit ``extra={"shop": ...}`` wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        shop = _current_shop.get()
        if shop and not getattr(record, "shop", None):
            record.shop = shop
        return True


class JSONFormatter(logging.Formatter):
    """Output log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain text with the shop appended when one is known."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        shop = getattr(record, "shop", None)
        return f"{line} [shop={shop}]" if shop else line


def configure_logging(level: str = "INFO", fmt: str = "json"):
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        fmt: "json" for structured lines, anything else for plain text
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    handler.addFilter(ShopContextFilter())
    root.addHandler(handler)

    # Admin API and payment calls are logged by our own client code
    for name in ("uvicorn.access", "httpx", "stripe"):
        logging.getLogger(name).setLevel(logging.WARNING)
