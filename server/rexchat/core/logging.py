from __future__ import annotations
import logging
import re
from typing import Union


REDACT_PATTERNS = [
    re.compile(r"(sk-[A-Za-z0-9_\-]{20,})"),  # OpenAI keys
    re.compile(r"(AIza[0-9A-Za-z_\-]{35})"),  # Google / Firebase web keys
    re.compile(r"(?i)(?<=bearer )[A-Za-z0-9_\-\.]+"),
    re.compile(r"(?<=key=)[A-Za-z0-9_\-]+"),
]


def redact(value: str) -> str:
    redacted = value
    for pat in REDACT_PATTERNS:
        redacted = pat.sub("***", redacted)
    return redacted


class RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        # Redact the fully rendered line so %-args are covered too
        return redact(super().format(record))

    def formatException(self, ei) -> str:
        return redact(super().formatException(ei))


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    logger = logging.getLogger()
    logger.setLevel(level)
    # Clear existing handlers in reload scenarios
    logger.handlers.clear()

    handler = logging.StreamHandler()
    formatter = RedactingFormatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    # httpx logs full request URLs at INFO, which include API keys for Firebase
    logging.getLogger("httpx").setLevel(logging.WARNING)
