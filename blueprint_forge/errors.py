"""Exception taxonomy for the Blueprint Forge orchestrator.

Errors fall into four groups:

* **Graph-level** (:class:`GraphError`) -- the blueprint itself is unusable.
  Always fatal and raised before any generator runs.
* **Node-scoped** (:class:`NodeError`) -- one node could not produce output.
  The node is marked failed and its hard dependents are skipped; the rest of
  the run carries on.
* **Merge-level** -- two generators disagree about the final tree.  Fatal;
  nothing is materialized.
* :class:`EnvVarConflictWarning` -- informational only, never raised.
"""

from __future__ import annotations

from typing import Any


class ForgeError(Exception):
    """Base class for every error raised by the orchestrator."""


# ---------------------------------------------------------------------------
# Graph-level errors
# ---------------------------------------------------------------------------


class GraphError(ForgeError):
    """The blueprint graph cannot be executed."""


class DuplicateNodeError(GraphError):
    """Two nodes share the same id."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate node id: {node_id!r}")


class UnknownGeneratorError(GraphError):
    """A node references a generator id that is not in the registry."""

    def __init__(self, generator_id: str, node_id: str | None = None) -> None:
        self.generator_id = generator_id
        self.node_id = node_id
        where = f" (node {node_id!r})" if node_id else ""
        super().__init__(f"Unknown generator {generator_id!r}{where}")


class MissingDependencyError(GraphError):
    """A node requires a generator that no node in the graph provides."""

    def __init__(self, node_id: str, missing_id: str) -> None:
        self.node_id = node_id
        self.missing_id = missing_id
        super().__init__(
            f"Node {node_id!r} requires {missing_id!r}, which is not present in the blueprint"
        )


class PortWiringError(GraphError):
    """A data wire is malformed or a required input port is left unwired."""


class CyclicDependencyError(GraphError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


# ---------------------------------------------------------------------------
# Node-scoped errors
# ---------------------------------------------------------------------------


class NodeError(ForgeError):
    """Base for errors that affect a single node only."""

    def __init__(self, node_id: str, message: str) -> None:
        self.node_id = node_id
        super().__init__(message)


class SchemaValidationError(NodeError):
    """The node configuration does not satisfy its generator's schema."""

    def __init__(self, node_id: str, fields: list[tuple[str, str]]) -> None:
        self.fields = fields
        details = "; ".join(f"{name}: {message}" for name, message in fields)
        super().__init__(node_id, f"Node {node_id!r} configuration is invalid: {details}")


class NodeGenerationError(NodeError):
    """The generator raised, or returned something other than a CodegenOutput."""

    def __init__(self, node_id: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            node_id, f"Node {node_id!r} generation failed: {type(cause).__name__}: {cause}"
        )


class NodeTimeoutError(NodeError, TimeoutError):
    """The generator did not return within the per-node timeout."""

    def __init__(self, node_id: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(node_id, f"Node {node_id!r} timed out after {timeout:g}s")


# ---------------------------------------------------------------------------
# Merge-level errors
# ---------------------------------------------------------------------------


class RoutingError(ForgeError):
    """A file could not be routed to a final path."""


class HardConflictError(ForgeError):
    """Two nodes produced different content for one non-mergeable path."""

    def __init__(self, path: str, first_node: str, second_node: str, detail: str = "") -> None:
        self.path = path
        self.first_node = first_node
        self.second_node = second_node
        suffix = f" ({detail})" if detail else ""
        super().__init__(
            f"Conflicting output for {path}: {first_node!r} and {second_node!r} disagree{suffix}"
        )


class ScriptConflictError(ForgeError):
    """Two nodes declared the same script name with different commands."""

    def __init__(self, name: str, first: Any, second: Any) -> None:
        self.name = name
        self.first = first
        self.second = second
        super().__init__(
            f"Script {name!r} declared with conflicting commands: {first!r} vs {second!r}"
        )


class MaterializationError(ForgeError):
    """The merged tree could not be written to storage."""


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


class EnvVarConflictWarning(UserWarning):
    """The same environment variable was declared with different descriptions."""

    def __init__(self, name: str, kept: str, ignored: str, node_id: str) -> None:
        self.name = name
        self.kept = kept
        self.ignored = ignored
        self.node_id = node_id
        super().__init__(
            f"Environment variable {name} redeclared by {node_id!r} with a different "
            f"description; keeping {kept!r}"
        )
