"""URL slugs for tournament names."""

from __future__ import annotations

import re
from typing import Callable

from .errors import SlugConflict

DEFAULT_SLUG_ATTEMPTS = 3

_INVALID = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(title: str) -> str:
    slug = _INVALID.sub("", title.lower().strip()).strip()
    slug = _WHITESPACE.sub("-", slug)
    return _DASHES.sub("-", slug)


def generate_unique_slug(
    title: str,
    exists: Callable[[str], bool],
    *,
    attempts: int = DEFAULT_SLUG_ATTEMPTS,
) -> str:
    """Return a slug for ``title`` that ``exists`` reports as free.

    The plain slug is tried first, then ``<slug>-1``, ``<slug>-2`` and so on
    until ``attempts`` candidates have been checked.
    """

    base = slugify(title)
    for attempt in range(attempts):
        candidate = base if attempt == 0 else f"{base}-{attempt}"
        if not exists(candidate):
            return candidate
    raise SlugConflict(base, attempts)


__all__ = ["DEFAULT_SLUG_ATTEMPTS", "generate_unique_slug", "slugify"]
