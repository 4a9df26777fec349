"""Pydantic v2 models describing a blueprint graph.

A blueprint is the user-authored description of the desired project: the
project metadata, an ordered list of configured nodes (one per generator
instance) and the data wires connecting node ports.  Declaration order of
``nodes`` is significant -- it breaks ties in the execution order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProjectMetadata(BaseModel):
    """Project-level metadata used for the root manifest and README."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None)
    version: str = Field(default="0.1.0", pattern=r"^\d+\.\d+\.\d+$")
    author: Optional[str] = Field(default=None)
    license: Literal["MIT", "Apache-2.0", "GPL-3.0", "UNLICENSED"] = Field(default="MIT")
    keywords: list[str] = Field(default_factory=list, max_length=10)


class Node(BaseModel):
    """One configured generator instance inside a blueprint."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique node id within the blueprint")
    generator_id: str = Field(
        ..., alias="generator", description="Id of the generator backing this node"
    )
    config: dict[str, Any] = Field(default_factory=dict)
    ports: Optional[list[str]] = Field(
        default=None,
        description="Port ids enabled on this node; None enables every declared port",
    )


class Wire(BaseModel):
    """A data mapping from an upstream output port to a downstream input port."""

    source: str = Field(..., description="Upstream node id")
    source_port: str = Field(..., description="Output port id on the upstream node")
    target: str = Field(..., description="Downstream node id")
    target_port: str = Field(..., description="Input port id on the downstream node")
    fields: Optional[list[str]] = Field(
        default=None,
        description="Published field names to copy; None copies every field",
    )


class BlueprintGraph(BaseModel):
    """The complete blueprint: project metadata, nodes and data wires."""

    project: ProjectMetadata
    nodes: list[Node] = Field(default_factory=list)
    wires: list[Wire] = Field(default_factory=list)

    def node(self, node_id: str) -> Node | None:
        """Return the node with *node_id*, or ``None``."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @classmethod
    def load(cls, path: str | Path) -> "BlueprintGraph":
        """Load and validate a blueprint from a JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)
