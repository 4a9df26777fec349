"""Immutable generator registry.

The registry is built once from a collection of descriptors and then passed
by reference into the orchestrator.  There is no process-wide instance and
no way to register or remove generators after construction.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from blueprint_forge.errors import UnknownGeneratorError
from blueprint_forge.registry.descriptor import GeneratorDescriptor, GeneratorMetadata


class GeneratorRegistry:
    """Lookup-by-id over a fixed set of :class:`GeneratorDescriptor` objects.

    Args:
        descriptors: Descriptors to register, in listing order.
        allowed_ids: Optional allow-list.  When given, any descriptor whose id
            is not listed is rejected.

    Raises:
        ValueError: If an id is registered twice or is not allowed.
    """

    def __init__(
        self,
        descriptors: Iterable[GeneratorDescriptor],
        allowed_ids: Iterable[str] | None = None,
    ) -> None:
        allowed = frozenset(allowed_ids) if allowed_ids is not None else None
        entries: dict[str, GeneratorDescriptor] = {}
        for descriptor in descriptors:
            if allowed is not None and descriptor.id not in allowed:
                raise ValueError(f"Generator {descriptor.id!r} is not in the allowed list")
            if descriptor.id in entries:
                raise ValueError(f"Generator {descriptor.id!r} is already registered")
            entries[descriptor.id] = descriptor
        self._entries = MappingProxyType(entries)

    def get(self, generator_id: str) -> GeneratorDescriptor | None:
        return self._entries.get(generator_id)

    def __getitem__(self, generator_id: str) -> GeneratorDescriptor:
        try:
            return self._entries[generator_id]
        except KeyError:
            raise UnknownGeneratorError(generator_id) from None

    def __contains__(self, generator_id: object) -> bool:
        return generator_id in self._entries

    def __iter__(self) -> Iterator[GeneratorDescriptor]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> list[str]:
        """Return all registered generator ids in registration order."""
        return list(self._entries)

    def metadata(self) -> dict[str, GeneratorMetadata]:
        """Return ``{generator_id: metadata}`` for every entry."""
        return {gid: d.metadata for gid, d in self._entries.items()}

    def by_category(self, category: str) -> list[GeneratorDescriptor]:
        """Return every descriptor whose metadata category is *category*."""
        return [d for d in self._entries.values() if d.metadata.category == category]
