"""Blueprint graph models and validation."""

from blueprint_forge.graph.models import BlueprintGraph, Node, ProjectMetadata, Wire
from blueprint_forge.graph.validator import GraphValidator, ValidatedGraph

__all__ = [
    "BlueprintGraph",
    "GraphValidator",
    "Node",
    "ProjectMetadata",
    "ValidatedGraph",
    "Wire",
]
