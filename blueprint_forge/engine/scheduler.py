"""Concurrent execution of a validated blueprint.

Every node gets one asyncio task, created in execution order.  A task
first waits for the tasks of its hard upstream nodes, then takes a slot
from a shared semaphore and runs its generator.  A node whose upstream did
not succeed is skipped without running; unrelated branches carry on.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from blueprint_forge.codegen.context import ExecutionContext
from blueprint_forge.codegen.output import CodegenOutput
from blueprint_forge.engine.invoker import GeneratorInvoker
from blueprint_forge.errors import NodeError
from blueprint_forge.graph.models import Node
from blueprint_forge.graph.validator import ValidatedGraph
from blueprint_forge.registry import GeneratorRegistry
from blueprint_forge.utils import node_logger

logger = logging.getLogger(__name__)


class NodeStatus(str, Enum):
    """Outcome of one node."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class NodeResult:
    """Record of what happened to one node during a run."""

    node_id: str
    generator_id: str
    status: NodeStatus
    output: CodegenOutput | None = None
    error: NodeError | None = None
    blocked_by: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is NodeStatus.SUCCEEDED


class ExecutionScheduler:
    """Runs generators with bounded concurrency and dependency ordering.

    Args:
        registry: Source of generator descriptors.
        invoker: Runs one generator.
        max_parallel: Maximum number of generators running at once.
    """

    def __init__(self, registry: GeneratorRegistry, invoker: GeneratorInvoker, max_parallel: int = 4) -> None:
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")
        self.registry = registry
        self.invoker = invoker
        self.max_parallel = max_parallel

    async def run(self, validated: ValidatedGraph) -> list[NodeResult]:
        """Execute every node and return the results in execution order.

        Cancelling the caller cancels every outstanding node task.
        """
        semaphore = asyncio.Semaphore(self.max_parallel)
        tasks: dict[str, asyncio.Task[NodeResult]] = {}
        for node in validated.order:
            upstream = [tasks[node_id] for node_id in validated.upstream[node.id]]
            tasks[node.id] = asyncio.create_task(
                self._run_node(node, upstream, validated, semaphore),
                name=f"node:{node.id}",
            )

        try:
            results = await asyncio.gather(*tasks.values())
        except BaseException:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise
        return list(results)

    async def _run_node(
        self,
        node: Node,
        upstream: list[asyncio.Task[NodeResult]],
        validated: ValidatedGraph,
        semaphore: asyncio.Semaphore,
    ) -> NodeResult:
        upstream_results = [await task for task in upstream]
        blocked_by = [r.node_id for r in upstream_results if not r.succeeded]
        if blocked_by:
            logger.warning("Skipping %s: upstream %s did not succeed", node.id, ", ".join(blocked_by))
            return NodeResult(
                node_id=node.id,
                generator_id=node.generator_id,
                status=NodeStatus.SKIPPED,
                blocked_by=blocked_by,
            )

        context = ExecutionContext(
            node_id=node.id,
            project=validated.graph.project,
            path_context=validated.present,
            logger=node_logger(node.id),
            inputs=self._wired_inputs(node, validated, {r.node_id: r for r in upstream_results}),
        )
        descriptor = self.registry[node.generator_id]

        async with semaphore:
            start = time.perf_counter()
            context.logger.info("Running %s", node.generator_id)
            try:
                output = await self.invoker.invoke(node, descriptor, context)
            except NodeError as exc:
                duration = time.perf_counter() - start
                context.logger.error("%s", exc)
                return NodeResult(
                    node_id=node.id,
                    generator_id=node.generator_id,
                    status=NodeStatus.FAILED,
                    error=exc,
                    duration_seconds=duration,
                )
            duration = time.perf_counter() - start

        context.logger.debug("Finished in %.3fs (%r)", duration, output)
        return NodeResult(
            node_id=node.id,
            generator_id=node.generator_id,
            status=NodeStatus.SUCCEEDED,
            output=output,
            duration_seconds=duration,
        )

    @staticmethod
    def _wired_inputs(
        node: Node,
        validated: ValidatedGraph,
        upstream: dict[str, NodeResult],
    ) -> Mapping[str, Mapping[str, Any]]:
        """Copy upstream published fields into this node's input ports."""
        inputs: dict[str, Mapping[str, Any]] = {}
        for wire in validated.wires_into.get(node.id, ()):
            source = upstream[wire.source].output
            published = source.published.get(wire.source_port, {}) if source else {}
            fields = {
                key: copy.deepcopy(value)
                for key, value in published.items()
                if wire.fields is None or key in wire.fields
            }
            inputs[wire.target_port] = MappingProxyType(fields)
        return MappingProxyType(inputs)
