"""Logging setup with player-name redaction.

Fight logs are full of character names and report codes. Annotation messages
quote them freely, so log records are scrubbed before they leave the process.
"""

from __future__ import annotations

import json
import logging
import re


class PlayerRedactor:
    """Redact character names and report codes from log messages."""

    # "Firstname Lastname@World"
    CHARACTER_PATTERN = re.compile(r"\b[A-Z][a-z'\-]+ [A-Z][a-z'\-]+@([A-Z][A-Za-z]+)\b")
    # 16 alphanumerics with at least one digit and one letter
    REPORT_CODE_PATTERN = re.compile(r"\b(?=[A-Za-z0-9]*\d)(?=[A-Za-z0-9]*[A-Za-z])[A-Za-z0-9]{16}\b")

    @classmethod
    def redact(cls, message: str) -> str:
        """Redact character names and report codes from a message."""
        # Keep the world, it helps debugging data-center specific issues
        message = cls.CHARACTER_PATTERN.sub(r"[PLAYER_REDACTED]@\1", message)

        # Keep first 4 chars of report codes
        def redact_code(match):
            return f"{match.group(0)[:4]}...[REPORT_REDACTED]"

        return cls.REPORT_CODE_PATTERN.sub(redact_code, message)


class RedactingFilter(logging.Filter):
    """Logging filter that redacts player data."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = PlayerRedactor.redact(str(record.msg))
        if record.args:
            record.args = tuple(
                PlayerRedactor.redact(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_secure_logging(
    log_level: str = "INFO", enable_redaction: bool = True, log_json: bool = False
) -> logging.Logger:
    """Configure the `fightline` logger and return it.

    Any handler left by a previous call is replaced, so repeated setup from
    the CLI or tests never duplicates output.
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    handler = logging.StreamHandler()
    if log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    if enable_redaction:
        # Handler-level so records from every fightline.* logger are covered
        handler.addFilter(RedactingFilter())

    package_logger = logging.getLogger("fightline")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)

    return package_logger
