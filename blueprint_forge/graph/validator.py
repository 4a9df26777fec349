"""Blueprint graph validation and execution ordering.

:class:`GraphValidator` checks that a :class:`BlueprintGraph` can run at all
and produces a deterministic execution order.  Checks run in a fixed
sequence so the same broken blueprint always reports the same error:

0. node ids are unique and every generator id is registered;
1. every ``requires`` entry is satisfied by some node in the graph;
2. data wires connect existing, enabled ports of compatible type and every
   required input port is wired;
3. the dependency graph (``requires`` edges plus wire edges) is acyclic;
4. a topological order is computed, ties broken by declaration order.

Validation is pure: the blueprint and registry are never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

import networkx as nx

from blueprint_forge.errors import (
    CyclicDependencyError,
    DuplicateNodeError,
    MissingDependencyError,
    PortWiringError,
    UnknownGeneratorError,
)
from blueprint_forge.graph.models import BlueprintGraph, Node, Wire
from blueprint_forge.registry import GeneratorDescriptor, GeneratorRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedGraph:
    """A blueprint that passed validation, plus its derived structure."""

    graph: BlueprintGraph
    order: tuple[Node, ...]
    # node id -> hard upstream node ids (requires + wire sources), in execution order
    upstream: Mapping[str, tuple[str, ...]]
    # node id -> wires feeding its input ports
    wires_into: Mapping[str, tuple[Wire, ...]]
    present: frozenset[str]
    # (node id, suggested generator id that is absent)
    suggestions: tuple[tuple[str, str], ...] = ()

    def position(self, node_id: str) -> int:
        """Return the execution index of *node_id*."""
        for index, node in enumerate(self.order):
            if node.id == node_id:
                return index
        raise KeyError(node_id)

    def dependents(self, node_id: str) -> set[str]:
        """Return every node that directly or transitively depends on *node_id*."""
        found: set[str] = set()
        frontier = [node_id]
        while frontier:
            current = frontier.pop()
            for candidate, ups in self.upstream.items():
                if current in ups and candidate not in found:
                    found.add(candidate)
                    frontier.append(candidate)
        return found


class GraphValidator:
    """Validates blueprints against a :class:`GeneratorRegistry`."""

    def __init__(self, registry: GeneratorRegistry) -> None:
        self.registry = registry

    def validate(self, graph: BlueprintGraph) -> ValidatedGraph:
        """Validate *graph* and compute its execution order.

        Raises:
            DuplicateNodeError: Two nodes share an id.
            UnknownGeneratorError: A node uses an unregistered generator.
            MissingDependencyError: A ``requires`` entry is not satisfied.
            PortWiringError: A wire or required input port is invalid.
            CyclicDependencyError: The dependency graph has a cycle.
        """
        descriptors = self._resolve_descriptors(graph)
        requires = self._check_requires(graph, descriptors)
        wires_into = self._check_wires(graph, descriptors)

        index = {node.id: i for i, node in enumerate(graph.nodes)}
        dag = nx.DiGraph()
        dag.add_nodes_from(node.id for node in graph.nodes)
        for node_id, ups in requires.items():
            dag.add_edges_from((up, node_id) for up in ups)
        for node_id, wires in wires_into.items():
            dag.add_edges_from((wire.source, node_id) for wire in wires)

        try:
            cycle_edges = nx.find_cycle(dag)
        except nx.NetworkXNoCycle:
            cycle_edges = []
        if cycle_edges:
            cycle = [u for u, _ in cycle_edges]
            cycle.append(cycle[0])
            raise CyclicDependencyError(cycle)

        ordered_ids = list(nx.lexicographical_topological_sort(dag, key=index.__getitem__))
        position = {node_id: i for i, node_id in enumerate(ordered_ids)}
        by_id = {node.id: node for node in graph.nodes}

        upstream = {
            node_id: tuple(sorted(dag.predecessors(node_id), key=position.__getitem__))
            for node_id in ordered_ids
        }
        present = frozenset(node.generator_id for node in graph.nodes)

        suggestions = tuple(
            (node.id, suggested)
            for node in graph.nodes
            for suggested in descriptors[node.id].suggests
            if suggested not in present
        )
        for node_id, suggested in suggestions:
            logger.debug("Node %s suggests %s, which is not in the blueprint", node_id, suggested)

        logger.debug("Execution order: %s", " -> ".join(ordered_ids))
        return ValidatedGraph(
            graph=graph,
            order=tuple(by_id[node_id] for node_id in ordered_ids),
            upstream=MappingProxyType(upstream),
            wires_into=MappingProxyType(
                {node_id: tuple(wires) for node_id, wires in wires_into.items()}
            ),
            present=present,
            suggestions=suggestions,
        )

    # -- Individual checks -------------------------------------------------

    def _resolve_descriptors(self, graph: BlueprintGraph) -> dict[str, GeneratorDescriptor]:
        descriptors: dict[str, GeneratorDescriptor] = {}
        for node in graph.nodes:
            if node.id in descriptors:
                raise DuplicateNodeError(node.id)
            descriptor = self.registry.get(node.generator_id)
            if descriptor is None:
                raise UnknownGeneratorError(node.generator_id, node.id)
            descriptors[node.id] = descriptor
        return descriptors

    def _check_requires(
        self,
        graph: BlueprintGraph,
        descriptors: dict[str, GeneratorDescriptor],
    ) -> dict[str, list[str]]:
        """Map each node to the node ids satisfying its ``requires`` list."""
        providers: dict[str, list[str]] = {}
        for node in graph.nodes:
            providers.setdefault(node.generator_id, []).append(node.id)

        requires: dict[str, list[str]] = {}
        for node in graph.nodes:
            ups: list[str] = []
            for required_id in descriptors[node.id].requires:
                if required_id not in providers:
                    raise MissingDependencyError(node.id, required_id)
                ups.extend(providers[required_id])
            requires[node.id] = ups
        return requires

    def _check_wires(
        self,
        graph: BlueprintGraph,
        descriptors: dict[str, GeneratorDescriptor],
    ) -> dict[str, list[Wire]]:
        nodes = {node.id: node for node in graph.nodes}
        wires_into: dict[str, list[Wire]] = {}
        wired_inputs: set[tuple[str, str]] = set()

        for node in graph.nodes:
            for port_id in node.ports or ():
                if descriptors[node.id].port(port_id) is None:
                    raise PortWiringError(
                        f"Node {node.id!r} enables unknown port {port_id!r}"
                    )

        for wire in graph.wires:
            for end in (wire.source, wire.target):
                if end not in nodes:
                    raise PortWiringError(f"Wire references unknown node {end!r}")
            if wire.source == wire.target:
                raise PortWiringError(f"Node {wire.source!r} cannot be wired to itself")

            source_port = _enabled_port(nodes[wire.source], descriptors[wire.source], wire.source_port)
            target_port = _enabled_port(nodes[wire.target], descriptors[wire.target], wire.target_port)
            if source_port.direction != "output":
                raise PortWiringError(
                    f"Port {wire.source}.{wire.source_port} is not an output port"
                )
            if target_port.direction != "input":
                raise PortWiringError(
                    f"Port {wire.target}.{wire.target_port} is not an input port"
                )
            if not target_port.accepts(source_port):
                raise PortWiringError(
                    f"Cannot wire {wire.source}.{wire.source_port} ({source_port.data_type}) "
                    f"into {wire.target}.{wire.target_port} ({target_port.data_type})"
                )
            key = (wire.target, wire.target_port)
            if key in wired_inputs:
                raise PortWiringError(
                    f"Input port {wire.target}.{wire.target_port} is wired more than once"
                )
            wired_inputs.add(key)
            wires_into.setdefault(wire.target, []).append(wire)

        for node in graph.nodes:
            for port in descriptors[node.id].input_ports():
                if not port.required or not _is_enabled(node, port.id):
                    continue
                if (node.id, port.id) not in wired_inputs:
                    raise PortWiringError(
                        f"Required input port {node.id}.{port.id} is not wired"
                    )
        return wires_into


def _is_enabled(node: Node, port_id: str) -> bool:
    return node.ports is None or port_id in node.ports


def _enabled_port(node: Node, descriptor: GeneratorDescriptor, port_id: str):
    port = descriptor.port(port_id)
    if port is None or not _is_enabled(node, port_id):
        raise PortWiringError(f"Node {node.id!r} has no enabled port {port_id!r}")
    return port
