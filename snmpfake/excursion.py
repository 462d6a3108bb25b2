"""
ExcursionGate: reads the operator-controlled "magic file" on demand.

A non-zero integer as the first token of the file allows the next reading to
exceed the configured upper bound. A missing file is the normal state.
"""
import logging
import os
import re

logger = logging.getLogger(__name__)

_INT_TOKEN = re.compile(r'^[+-]?\d+$')

# Only the first token matters; cap the read for files an operator forgot about.
_MAX_READ = 4096


def read_first_token(path: str) -> str | None:
    """Return the first whitespace-delimited token of a text file, or None.

    None covers both "no such file" and "file exists but is unreadable or
    empty". The file is opened and closed on every call.
    """
    if not os.path.isfile(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            head = f.read(_MAX_READ)
    except OSError as e:
        logger.debug(f"Magic file {path} not readable: {e}")
        return None
    tokens = head.split(maxsplit=1)
    return tokens[0] if tokens else None


def is_excursion_active(path: str) -> bool:
    token = read_first_token(path)
    if token is None:
        return False
    if not _INT_TOKEN.match(token):
        logger.debug(f"Magic file {path} starts with non-integer token {token!r}")
        return False
    return int(token) != 0


class ExcursionGate:
    """Callable wrapper binding the magic file path, re-read on every check."""

    def __init__(self, path: str) -> None:
        self.path = path

    def is_active(self) -> bool:
        return is_excursion_active(self.path)

    def __call__(self) -> bool:
        return self.is_active()

    def __repr__(self) -> str:
        return f"ExcursionGate({self.path!r})"
