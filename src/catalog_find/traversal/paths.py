"""Pathname filtering, rewriting, and display rules."""

from __future__ import annotations

import re
from dataclasses import dataclass

from catalog_find.config import TraversalSettings
from catalog_find.errors import PathTooLong


@dataclass(slots=True)
class PathFilter:
    """Decides which leaves are dispatched and how visited paths are shown.

    ``regexp`` uses search semantics: a leaf is dispatched only if the pattern
    matches somewhere in it. ``substitute`` replaces the first match literally,
    both in the displayed path and in the dispatched leaf.
    """

    regexp: re.Pattern[str] | None = None
    substitute: str | None = None
    check_length: int = 0
    encoding: str | None = None

    @classmethod
    def from_settings(cls, settings: TraversalSettings) -> PathFilter:
        return cls(
            regexp=re.compile(settings.regexp) if settings.regexp is not None else None,
            substitute=settings.substitute,
            check_length=settings.check_length,
            encoding=settings.encoding,
        )

    def leaf_for(self, path: str) -> str | None:
        """Leaf to dispatch for ``path``, or None when it is filtered out."""

        if self.regexp is None:
            return path
        if self.regexp.search(path) is None:
            return None
        return self._substituted(path)

    def display(self, path: str) -> str | None:
        """Line to print for a visited path in verbose mode, or None."""

        if self.regexp is not None:
            if self.regexp.search(path) is None:
                return None
            return self._substituted(path)
        if self.check_length > 0:
            return path if len(path) > self.check_length else None
        return path

    def is_malformed(self, path: str) -> bool:
        """True when an encoding check is configured and ``path`` fails it."""

        if self.encoding is None:
            return False
        try:
            path.encode(self.encoding)
        except UnicodeEncodeError:
            return True
        return False

    def _substituted(self, path: str) -> str:
        if self.substitute is None or self.regexp is None:
            return path
        replacement = self.substitute
        return self.regexp.sub(lambda _match: replacement, path, count=1)


def compose_path(directory: str, filename: str, *, max_length: int) -> str:
    """Join a collection name and a data object name, enforcing the length bound."""

    path = f"{directory}{filename}" if directory.endswith("/") else f"{directory}/{filename}"
    if len(path) > max_length:
        raise PathTooLong(f"Pathname too long ({len(path)} > {max_length}): {path[:256]}")
    return path
