"""Translate Supabase client failures into service errors."""

from collections.abc import Iterator
from contextlib import contextmanager

import httpx
from postgrest.exceptions import APIError

from not_at_home.domain.errors import DuplicateSessionCodeError, PersistenceError

UNIQUE_VIOLATION = "23505"


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise PostgREST and transport errors as ``PersistenceError``."""
    try:
        yield
    except APIError as exc:
        if exc.code == UNIQUE_VIOLATION:
            raise DuplicateSessionCodeError(f"{action}: {exc.message}") from exc
        raise PersistenceError(f"{action}: {exc.message}") from exc
    except httpx.HTTPError as exc:
        raise PersistenceError(f"{action}: {exc}") from exc
