from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from typing import Iterator

# Task-local id tying together the log records of one validation or proof action
_cid = contextvars.ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get current correlation id (empty string if not set)."""
    return _cid.get("")


@contextmanager
def correlation_scope(value: str | None = None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block.

    An id already bound by the caller is reused so nested actions share it.
    """
    existing = _cid.get("")
    if existing and value is None:
        yield existing
        return
    token = _cid.set(value or uuid.uuid4().hex)
    try:
        yield _cid.get()
    finally:
        _cid.reset(token)
