"""Read-only inputs handed to a generator."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

from blueprint_forge.graph.models import ProjectMetadata


@dataclass(frozen=True)
class ConfiguredNode:
    """A blueprint node whose configuration passed schema validation."""

    id: str
    generator_id: str
    config: BaseModel


@dataclass(frozen=True)
class ExecutionContext:
    """Everything a generator may read while it runs.

    ``path_context`` is the set of generator ids present in the blueprint.
    ``inputs`` maps each wired input port to the fields copied from the
    upstream node's published output.
    """

    node_id: str
    project: ProjectMetadata
    path_context: frozenset[str]
    logger: logging.LoggerAdapter
    inputs: Mapping[str, Mapping[str, Any]] = field(default_factory=lambda: MappingProxyType({}))

    def has(self, generator_id: str) -> bool:
        """Return ``True`` if *generator_id* is part of the blueprint."""
        return generator_id in self.path_context

    def input(self, port_id: str) -> Mapping[str, Any]:
        """Return the data wired into *port_id*, or an empty mapping."""
        return self.inputs.get(port_id, MappingProxyType({}))
