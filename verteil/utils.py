import sys
from typing import Any

from loguru import logger

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "token",
        "access_token",
        "authorization",
        "credit_card",
        "card_number",
        "cardnumber",
        "cvv",
        "secret",
        "client_secret",
        "api_key",
    }
)
REDACTED = "******"

_MISSING = object()


def dig(data: Any, *path: str | int, default: Any = None) -> Any:
    """Walk nested dicts/lists; ``default`` when any step is missing or None."""
    current = data
    for step in path:
        if isinstance(current, dict) and step in current:
            current = current[step]
        elif isinstance(current, list) and isinstance(step, int) and -len(current) <= step < len(current):
            current = current[step]
        else:
            return default
    return default if current is None else current


def has(data: Any, *path: str | int) -> bool:
    return dig(data, *path, default=_MISSING) is not _MISSING


def as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def sanitize_log_data(data: Any) -> Any:
    """
    Return a copy of ``data`` with sensitive fields masked.

    Walks nested dicts and lists; keys are matched case-insensitively.
    The input is never modified.
    """
    if isinstance(data, dict):
        return {
            key: (
                REDACTED
                if isinstance(key, str) and key.lower() in SENSITIVE_FIELDS
                else sanitize_log_data(value)
            )
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize_log_data(item) for item in data]
    return data


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Replace loguru's default sink with the configured level and optional file."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if log_file:
        logger.add(log_file, level=level.upper(), rotation="10 MB", retention=5)
    logger.debug(f"Logging configured at {level.upper()}")
