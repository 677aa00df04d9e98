"""Process logging for the data claims service.

Every handler installed here masks claim phone numbers, so a stray
``%s`` of a request body can't leak one into the logs.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from data_claims.config import LoggingSettings, load_settings
from data_claims.phone import PHONE_MASK_RE

REDACTED_PHONE = "(***) ***-****"

# Driver chatter stays at WARNING unless the service itself logs more quietly.
QUIET_LOGGERS = ("pymongo", "httpx", "httpcore")

_configure_lock = threading.Lock()
_configured = False

_logger = logging.getLogger(__name__)

_formatter = logging.Formatter(
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)


class PhoneNumberRedactor(logging.Filter):
    """Replace masked phone numbers in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = PHONE_MASK_RE.sub(REDACTED_PHONE, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _build_handlers(settings: LoggingSettings) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.file:
        path = Path(settings.file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path))
        except OSError as exc:
            _logger.warning("Cannot write logs to %s: %s", path, exc)

    redactor = PhoneNumberRedactor()
    for handler in handlers:
        handler.setFormatter(_formatter)
        handler.addFilter(redactor)
    return handlers


def configure_logging() -> None:
    """Install the service handlers on the root logger."""
    global _configured

    settings = load_settings().logging
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, handlers=_build_handlers(settings), force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _configured = True


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        with _configure_lock:
            if not _configured:
                configure_logging()
    return logging.getLogger(name)
