"""The generator-facing contract: execution context and output accumulator."""

from blueprint_forge.codegen.context import ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.output import (
    CodegenOutput,
    DocEntry,
    EnvVar,
    GeneratedFile,
    Interface,
    Script,
)

__all__ = [
    "CodegenOutput",
    "ConfiguredNode",
    "DocEntry",
    "EnvVar",
    "ExecutionContext",
    "GeneratedFile",
    "Interface",
    "Script",
]
