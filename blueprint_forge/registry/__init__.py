"""Generator descriptors and the immutable registry that holds them."""

from blueprint_forge.registry.descriptor import (
    GenerateFn,
    GeneratorDescriptor,
    GeneratorMetadata,
    Port,
)
from blueprint_forge.registry.registry import GeneratorRegistry

__all__ = [
    "GenerateFn",
    "GeneratorDescriptor",
    "GeneratorMetadata",
    "GeneratorRegistry",
    "Port",
]
