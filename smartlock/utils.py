"""
Shared logger for SmartLock.
Console output always; a rotating smartlock.log when SMARTLOCK_LOG_DIR (or ./logs)
can be created. Gemini API keys are scrubbed from every formatted line.
"""

from __future__ import annotations

import logging
import os
import re
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List


_SECRET_PATTERNS = (
    (re.compile(r"\bAIza[0-9A-Za-z_-]{20,}\b"), "***REDACTED_KEY***"),
    (re.compile(r"([?&]key=)[^&\s]+", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"(x-goog-api-key['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+", re.IGNORECASE), r"\1***REDACTED***"),
)


def _redact(text: str) -> str:
    for pattern, repl in _SECRET_PATTERNS:
        text = pattern.sub(repl, text)
    return text


class RedactingFormatter(logging.Formatter):
    """UTC formatter that scrubs API keys from the final line."""
    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        return _redact(super().format(record))


_FORMATTER = RedactingFormatter(
    "%(asctime)s [%(levelname)s] [SMARTLOCK] %(message)s", datefmt="%Y-%m-%dT%H:%M:%S%z"
)


def _handlers(problems: List[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    log_dir = Path(os.environ.get("SMARTLOCK_LOG_DIR") or Path.cwd() / "logs")
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_dir / "smartlock.log", maxBytes=1_000_000, backupCount=3))
    except OSError as e:
        problems.append(f"[LOG] File handler unavailable ({e}); console-only mode")
    return handlers


logger = logging.getLogger("SMARTLOCK")
logger.setLevel(os.environ.get("SMARTLOCK_LOG_LEVEL", "INFO").upper())

for _h in list(logger.handlers):
    logger.removeHandler(_h)
_problems: List[str] = []
for _h in _handlers(_problems):
    _h.setLevel(logger.level)
    _h.setFormatter(_FORMATTER)
    logger.addHandler(_h)
for _msg in _problems:
    logger.warning(_msg)


def get_logger() -> logging.Logger:
    return logger


def set_log_level(level: str = "INFO") -> None:
    """Change the level of the logger and all of its handlers."""
    lvl = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logger.setLevel(lvl)
    for h in logger.handlers:
        h.setLevel(lvl)
