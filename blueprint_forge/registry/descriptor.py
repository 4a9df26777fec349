"""Static generator descriptors.

A :class:`GeneratorDescriptor` is everything the orchestrator knows about a
generator unit without running it: metadata, configuration schema, typed
ports, dependency lists, the path-mapping table used for category routing,
and the ``generate`` callable itself.  Descriptors are immutable once built.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from blueprint_forge.codegen.context import ConfiguredNode, ExecutionContext
    from blueprint_forge.codegen.output import CodegenOutput


PortDirection = Literal["input", "output"]
PortDataType = Literal["contract", "api", "types", "config", "code", "any"]

GenerateFn = Callable[
    ["ConfiguredNode", "ExecutionContext"],
    Union["CodegenOutput", Awaitable["CodegenOutput"]],
]


class Port(BaseModel):
    """An input or output port used for visual data connections."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    direction: PortDirection
    data_type: PortDataType = "any"
    required: bool = False

    def accepts(self, other: "Port") -> bool:
        """Return ``True`` if data of *other*'s type may flow into this port."""
        return "any" in (self.data_type, other.data_type) or self.data_type == other.data_type


class GeneratorMetadata(BaseModel):
    """Descriptive metadata shown in listings."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = "0.1.0"
    description: str = ""
    category: str = "app"
    tags: tuple[str, ...] = Field(default_factory=tuple)


@dataclass(frozen=True)
class GeneratorDescriptor:
    """Registry entry for one generator unit."""

    id: str
    metadata: GeneratorMetadata
    config_schema: type[BaseModel]
    generate: GenerateFn
    ports: tuple[Port, ...] = ()
    requires: tuple[str, ...] = ()
    suggests: tuple[str, ...] = ()
    compatible_with: tuple[str, ...] = ()
    # Ordered (glob pattern, category) pairs; first match wins.
    path_mappings: tuple[tuple[str, str], ...] = ()
    template_dir: Path | None = None
    template_namespace: str | None = None
    default_config: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the mutable bits handed in by callers.
        object.__setattr__(self, "ports", tuple(self.ports))
        object.__setattr__(self, "requires", tuple(self.requires))
        object.__setattr__(self, "suggests", tuple(self.suggests))
        object.__setattr__(self, "compatible_with", tuple(self.compatible_with))
        object.__setattr__(
            self, "path_mappings", tuple((str(p), str(c)) for p, c in self.path_mappings)
        )
        object.__setattr__(
            self, "default_config", MappingProxyType(dict(self.default_config))
        )
        ids = [p.id for p in self.ports]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Generator {self.id!r} declares duplicate port ids: {ids}")

    # -- Port helpers ------------------------------------------------------

    def port(self, port_id: str) -> Port | None:
        for port in self.ports:
            if port.id == port_id:
                return port
        return None

    def input_ports(self) -> tuple[Port, ...]:
        return tuple(p for p in self.ports if p.direction == "input")

    def output_ports(self) -> tuple[Port, ...]:
        return tuple(p for p in self.ports if p.direction == "output")
