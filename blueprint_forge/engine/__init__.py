"""Execution engine: invocation, scheduling, merging and materialization."""

from blueprint_forge.engine.invoker import GeneratorInvoker
from blueprint_forge.engine.manifest import ManifestAggregator, ManifestSummary
from blueprint_forge.engine.materialize import Materializer
from blueprint_forge.engine.merger import OutputMerger, TreeEntry, VirtualFileTree
from blueprint_forge.engine.scheduler import ExecutionScheduler, NodeResult, NodeStatus
from blueprint_forge.engine.strategies import DEFAULT_MERGE_RULES, MergeRule, build_merge_rules

__all__ = [
    "DEFAULT_MERGE_RULES",
    "ExecutionScheduler",
    "GeneratorInvoker",
    "ManifestAggregator",
    "ManifestSummary",
    "Materializer",
    "MergeRule",
    "NodeResult",
    "NodeStatus",
    "OutputMerger",
    "TreeEntry",
    "VirtualFileTree",
    "build_merge_rules",
]
