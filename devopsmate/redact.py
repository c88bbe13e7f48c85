"""Mask Civo credentials in anything the tool logs."""

import logging
import os
import re

MASK = "***"

# Environment variables holding Civo credentials
_SECRET_ENV_VARS = ("CIVO_API_KEY", "CIVO_TOKEN")

# Shorter values are too likely to match ordinary text
_MIN_SECRET_LENGTH = 8

# Credentials that did not come from the environment (--api-key)
_registered: set[str] = set()

# (secrets the pattern was built from, compiled pattern or None)
_cache: tuple[frozenset, re.Pattern | None] = (frozenset(), None)


def _current_secrets() -> frozenset:
    candidates = [*_registered, *(os.environ.get(var, "") for var in _SECRET_ENV_VARS)]
    return frozenset(v for v in candidates if len(v) >= _MIN_SECRET_LENGTH)


def _secret_pattern() -> re.Pattern | None:
    """Return one alternation over all known secrets, rebuilt when the set changes."""
    global _cache
    secrets = _current_secrets()
    if secrets != _cache[0]:
        # Longest first, so a secret containing another is masked whole
        ordered = sorted(secrets, key=len, reverse=True)
        pattern = re.compile("|".join(map(re.escape, ordered))) if ordered else None
        _cache = (secrets, pattern)
    return _cache[1]


def register_secret(value: str | None) -> None:
    """Mask ``value`` from now on. Empty values are ignored."""
    if value:
        _registered.add(value)


def redact_secrets(text: str) -> str:
    pattern = _secret_pattern()
    return pattern.sub(MASK, text) if pattern else text


class SecretRedactingFilter(logging.Filter):
    """Handler filter that masks credentials in the fully formatted message.

    The record is formatted once here (``msg % args``) and the masked text
    replaces ``msg``, so secrets passed as %-style arguments are caught too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        pattern = _secret_pattern()
        if pattern:
            record.msg = pattern.sub(MASK, record.getMessage())
            record.args = None
        return True
