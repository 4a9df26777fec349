"""Category-based path resolution.

:class:`PathCategoryResolver` is the only place that turns a
``(category, relative path, present generators)`` triple into a final
project path.  It is a pure function of its inputs and the routing table.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from blueprint_forge.errors import RoutingError
from blueprint_forge.routing.categories import PathRoutingTable, default_routing_table

_WILDCARDS = frozenset("*?")


def normalize_relative(path: str) -> str:
    """Normalise a generator-supplied path to ``a/b/c`` form.

    Backslashes become slashes; leading slashes and ``.`` segments are
    dropped.  ``..`` segments are rejected.

    Raises:
        RoutingError: The path is empty or escapes the project root.
    """
    parts: list[str] = []
    for part in path.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise RoutingError(f"Path escapes the project root: {path!r}")
        parts.append(part)
    if not parts:
        raise RoutingError(f"Empty output path: {path!r}")
    return "/".join(parts)


class PathCategoryResolver:
    """Resolves categorised relative paths against a routing table."""

    def __init__(self, table: PathRoutingTable | None = None) -> None:
        self.table = table or default_routing_table()

    def resolve(
        self,
        category: str | None,
        relative_path: str,
        present_ids: Iterable[str],
    ) -> str:
        """Return the absolute POSIX path (``/a/b.ts``) for one file.

        Raises:
            RoutingError: No rule covers *category*, or the path is invalid.
        """
        relative = normalize_relative(relative_path)
        if category is None:
            return "/" + relative

        directory = self.table.lookup(category, frozenset(present_ids))
        if directory is None:
            raise RoutingError(f"No routing rule for category {category!r}")
        directory = directory.strip("/")
        return f"/{directory}/{relative}" if directory else f"/{relative}"


# ---------------------------------------------------------------------------
# Path-mapping globs
# ---------------------------------------------------------------------------


@lru_cache(maxsize=512)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def literal_prefix(pattern: str) -> str:
    """Return the directory prefix of *pattern* that contains no wildcard.

    For a fully literal pattern this is its parent directory, so the file
    name survives as the relative path.
    """
    segments = pattern.split("/")
    literal: list[str] = []
    for segment in segments[:-1]:
        if _WILDCARDS & set(segment):
            break
        literal.append(segment)
    return "/".join(literal) + "/" if literal else ""


def match_category(
    path: str,
    path_mappings: Iterable[tuple[str, str]],
) -> tuple[str, str] | None:
    """Match *path* against ordered ``(glob, category)`` pairs.

    Returns ``(category, relative_path)`` for the first matching pattern,
    where ``relative_path`` is *path* with the pattern's literal prefix
    removed, or ``None`` when nothing matches.
    """
    normalized = normalize_relative(path)
    for pattern, category in path_mappings:
        pattern = pattern.strip("/")
        if _compile_glob(pattern).match(normalized):
            prefix = literal_prefix(pattern)
            return category, normalized[len(prefix):]
    return None


def glob_matches(pattern: str, path: str) -> bool:
    """Return ``True`` if *path* (already normalised) matches *pattern*."""
    return _compile_glob(pattern.strip("/")).match(path) is not None
