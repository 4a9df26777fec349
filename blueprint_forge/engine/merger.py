"""Virtual file tree and the merger that fills it.

:class:`OutputMerger` is the only writer of a :class:`VirtualFileTree`.
Node outputs are committed one at a time, strictly in execution order, so
the same blueprint always yields the same tree.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from blueprint_forge.codegen.output import CodegenOutput, FileContent, GeneratedFile
from blueprint_forge.engine.strategies import (
    DEFAULT_MERGE_RULES,
    MergeContext,
    MergeRule,
    strategy_for,
)
from blueprint_forge.errors import HardConflictError
from blueprint_forge.registry import GeneratorDescriptor
from blueprint_forge.routing import PathCategoryResolver, match_category

logger = logging.getLogger(__name__)


@dataclass
class TreeEntry:
    """Content at one tree path plus the nodes that produced it."""

    content: FileContent
    node_id: str
    contributors: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        data = self.content.encode("utf-8") if isinstance(self.content, str) else self.content
        return len(data)


class VirtualFileTree:
    """In-memory mapping of absolute POSIX paths to :class:`TreeEntry`."""

    def __init__(self) -> None:
        self._entries: dict[str, TreeEntry] = {}
        self._dirs: set[str] = set()

    def get(self, path: str) -> TreeEntry | None:
        return self._entries.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def items(self) -> list[tuple[str, TreeEntry]]:
        """Return ``(path, entry)`` pairs sorted by path."""
        return sorted(self._entries.items())

    def snapshot(self) -> dict[str, FileContent]:
        """Return a plain ``{path: content}`` dict, sorted by path."""
        return {path: entry.content for path, entry in self.items()}

    def clash(self, path: str) -> str | None:
        """Return an existing path that cannot coexist with a file at *path*.

        That is either a file sitting where *path* needs a parent directory,
        or a file below *path*, which would have to be a directory.
        """
        for parent in _parents(path):
            if parent in self._entries:
                return parent
        if path in self._dirs:
            prefix = path + "/"
            return min(p for p in self._entries if p.startswith(prefix))
        return None

    def _add(self, path: str, entry: TreeEntry) -> None:
        self._entries[path] = entry
        self._dirs.update(_parents(path))


def _parents(path: str) -> list[str]:
    return [str(parent) for parent in PurePosixPath(path).parents if str(parent) != "/"]


class OutputMerger:
    """Routes node output into a :class:`VirtualFileTree` under the conflict policy.

    Args:
        resolver: Turns ``(category, path)`` pairs into tree paths.
        present_ids: Generator ids present in the blueprint.
        merge_rules: Ordered mergeable-target table.
    """

    def __init__(
        self,
        resolver: PathCategoryResolver,
        present_ids: Iterable[str],
        merge_rules: Iterable[MergeRule] = DEFAULT_MERGE_RULES,
    ) -> None:
        self.resolver = resolver
        self.present_ids = frozenset(present_ids)
        self.merge_rules = tuple(merge_rules)
        self.tree = VirtualFileTree()

    # -- Routing -------------------------------------------------------------

    def route(self, item: GeneratedFile, descriptor: GeneratorDescriptor) -> str:
        """Return the tree path for one generated file.

        Files without an explicit category fall back to the descriptor's
        path mappings; unmapped files keep their own path.
        """
        category, relative = item.category, item.path
        if category is None:
            matched = match_category(item.path, descriptor.path_mappings)
            if matched is not None:
                category, relative = matched
        return self.resolver.resolve(category, relative, self.present_ids)

    # -- Commit ----------------------------------------------------------------

    def commit(self, node_id: str, descriptor: GeneratorDescriptor, output: CodegenOutput) -> list[str]:
        """Merge one node's files and docs into the tree.

        Returns the tree paths written by this node.

        Raises:
            RoutingError: A file could not be routed.
            HardConflictError: Two nodes disagree on a non-mergeable path.
            ScriptConflictError: Two ``package.json`` files disagree on a script.
        """
        written: list[str] = []
        for item in output.files:
            path = self.route(item, descriptor)
            self.write(path, item.content, node_id)
            written.append(path)
        for doc in output.docs:
            path = self.resolver.resolve("docs", doc.path, self.present_ids)
            self.write(path, f"# {doc.title}\n\n{doc.content.rstrip()}\n", node_id)
            written.append(path)
        logger.debug("Committed %d path(s) from %s", len(written), node_id)
        return written

    def write(self, path: str, content: FileContent, node_id: str) -> None:
        """Write *content* at *path*, applying the conflict policy."""
        existing = self.tree._entries.get(path)
        if existing is None:
            self._insert(path, content, node_id)
            return

        if existing.content != content:
            strategy = strategy_for(path, self.merge_rules)
            if strategy is None or not isinstance(content, str) or not isinstance(existing.content, str):
                raise HardConflictError(path, existing.node_id, node_id)
            ctx = MergeContext(path=path, first_node=existing.node_id, second_node=node_id)
            existing.content = strategy(existing.content, content, ctx)
            logger.debug("Merged %s from %s into output of %s", path, node_id, existing.node_id)

        if node_id not in existing.contributors:
            existing.contributors.append(node_id)

    def replace(self, path: str, content: str, contributor: str) -> None:
        """Overwrite *path* with content derived from what is already there.

        Used for aggregated artifacts (the root ``package.json``) whose new
        content was computed from the existing entry.
        """
        existing = self.tree._entries.get(path)
        if existing is None:
            self._insert(path, content, contributor)
            return
        existing.content = content
        if contributor not in existing.contributors:
            existing.contributors.append(contributor)

    def _insert(self, path: str, content: FileContent, node_id: str) -> None:
        other = self.tree.clash(path)
        if other is not None:
            owner = self.tree._entries[other].node_id
            raise HardConflictError(path, owner, node_id, f"{other} and {path} cannot both be files")
        self.tree._add(path, TreeEntry(content=content, node_id=node_id, contributors=[node_id]))
