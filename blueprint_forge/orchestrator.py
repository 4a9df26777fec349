"""Blueprint Forge orchestrator.

Turns a blueprint into one project tree in five steps:

1. VALIDATE    -- check the graph and compute the execution order.
2. GENERATE    -- run every node's generator, bounded and dependency-aware.
3. MERGE       -- route each file and commit node outputs in order.
4. AGGREGATE   -- fold env vars, scripts and docs into project files.
5. MATERIALIZE -- write the tree atomically (directory or zip).

Graph and merge errors abort the run before anything is written.  A failing
node only takes its dependents down with it; the rest of the project is
still produced and the report is marked partial.

Usage::

    python -m blueprint_forge.orchestrator blueprint.json --output ./my-dapp
    python -m blueprint_forge.orchestrator blueprint.json --archive --dry-run
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, computed_field
from rich.panel import Panel
from rich.table import Table

from blueprint_forge.config import Config
from blueprint_forge.engine import (
    ExecutionScheduler,
    GeneratorInvoker,
    ManifestAggregator,
    Materializer,
    NodeResult,
    NodeStatus,
    OutputMerger,
    VirtualFileTree,
    build_merge_rules,
)
from blueprint_forge.errors import ForgeError
from blueprint_forge.graph import BlueprintGraph, GraphValidator, ValidatedGraph
from blueprint_forge.registry import GeneratorRegistry
from blueprint_forge.routing import PathCategoryResolver, PathRoutingTable
from blueprint_forge.utils import (
    configure_logging,
    console,
    format_duration,
    format_size,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------


class NodeRecord(BaseModel):
    node_id: str
    generator_id: str
    status: NodeStatus
    error: Optional[str] = None
    blocked_by: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0


class FileRecord(BaseModel):
    path: str
    size: int
    contributors: list[str]


class RunReport(BaseModel):
    """Outcome of one orchestrator run."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    project: str
    started_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    duration_seconds: float = 0.0
    order: list[str] = Field(default_factory=list)
    nodes: list[NodeRecord] = Field(default_factory=list)
    files: list[FileRecord] = Field(default_factory=list)
    env_vars: list[str] = Field(default_factory=list)
    scripts: dict[str, str] = Field(default_factory=dict)
    interfaces: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    output_path: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return all(node.status is NodeStatus.SUCCEEDED for node in self.nodes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def partial(self) -> bool:
        succeeded = sum(node.status is NodeStatus.SUCCEEDED for node in self.nodes)
        return 0 < succeeded < len(self.nodes)

    def node(self, node_id: str) -> NodeRecord | None:
        for record in self.nodes:
            if record.node_id == node_id:
                return record
        return None

    def save(self, path: str | Path) -> Path:
        """Write the report as JSON and return the path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """Runs blueprints against a fixed generator registry.

    Args:
        registry: The generators available to blueprints.
        config: Run, merge and materialization settings.
        routing_table: Overrides the default category routing table.
    """

    def __init__(
        self,
        registry: GeneratorRegistry,
        config: Config | None = None,
        routing_table: PathRoutingTable | None = None,
    ) -> None:
        self.registry = registry
        self.config = config or Config()
        self.validator = GraphValidator(registry)
        self.resolver = PathCategoryResolver(routing_table)
        self.merge_rules = build_merge_rules(self.config.merge.extra_rules)
        self.invoker = GeneratorInvoker(node_timeout=self.config.run.node_timeout)
        self.scheduler = ExecutionScheduler(
            registry, self.invoker, max_parallel=self.config.run.max_parallel
        )

    def validate(self, graph: BlueprintGraph) -> ValidatedGraph:
        return self.validator.validate(graph)

    async def generate(self, graph: BlueprintGraph) -> tuple[VirtualFileTree, RunReport]:
        """Validate, run, merge and aggregate *graph* without writing anything.

        Raises:
            GraphError: The blueprint is invalid; no generator has run.
            HardConflictError: Two nodes disagree on a non-mergeable path.
            ScriptConflictError: Two nodes disagree on a script command.
            RoutingError: A file could not be routed.
        """
        start = time.perf_counter()
        validated = self.validate(graph)
        order = [node.id for node in validated.order]
        logger.info("Validated %d node(s): %s", len(order), ", ".join(order) or "none")

        results = await self.scheduler.run(validated)

        merger = OutputMerger(self.resolver, validated.present, self.merge_rules)
        committed = []
        for result in results:
            if result.succeeded and result.output is not None:
                merger.commit(result.node_id, self.registry[result.generator_id], result.output)
                committed.append((result.node_id, result.output))

        aggregator = ManifestAggregator(graph.project)
        summary = aggregator.aggregate(committed)
        aggregator.apply(summary, merger)

        report = RunReport(
            project=graph.project.name,
            order=order,
            nodes=[_node_record(result) for result in results],
            files=[
                FileRecord(path=path, size=entry.size, contributors=list(entry.contributors))
                for path, entry in merger.tree.items()
            ],
            env_vars=[var.name for var in summary.env_vars],
            scripts={script.name: script.command for script in summary.scripts},
            interfaces=[
                f"{interface.name} ({interface.kind}) from {node_id}"
                for node_id, interface in summary.interfaces
            ],
            warnings=[str(warning) for warning in summary.warnings],
            suggestions=[
                f"{node_id} works best with {suggested}"
                for node_id, suggested in validated.suggestions
            ],
        )
        report.duration_seconds = time.perf_counter() - start
        return merger.tree, report

    async def run(self, graph: BlueprintGraph, materialize: bool = True) -> RunReport:
        """Run *graph* end to end and return the :class:`RunReport`.

        With ``materialize=False`` the tree is built and reported but not
        written.

        Raises:
            ForgeError: A graph, merge or materialization error aborted the run.
        """
        tree, report = await self.generate(graph)
        if materialize:
            cancelled = threading.Event()
            try:
                target = await asyncio.to_thread(self._materialize, tree, cancelled)
            except asyncio.CancelledError:
                # The writer thread keeps going; stop it before the rename.
                cancelled.set()
                raise
            report.output_path = str(target)
        return report

    def _materialize(self, tree: VirtualFileTree, cancelled: threading.Event) -> Path:
        settings = self.config.materialize
        materializer = Materializer(overwrite=settings.overwrite, cancelled=cancelled)
        if settings.archive:
            target = settings.output_dir
            if target.suffix != ".zip":
                target = target.with_name(target.name + ".zip")
            return materializer.write_archive(tree, target)
        return materializer.write_directory(tree, settings.output_dir)


def _node_record(result: NodeResult) -> NodeRecord:
    return NodeRecord(
        node_id=result.node_id,
        generator_id=result.generator_id,
        status=result.status,
        error=str(result.error) if result.error else None,
        blocked_by=list(result.blocked_by),
        duration_seconds=round(result.duration_seconds, 4),
    )


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------

_STATUS_STYLE = {
    NodeStatus.SUCCEEDED: "green",
    NodeStatus.FAILED: "red",
    NodeStatus.SKIPPED: "yellow",
}


def print_report(report: RunReport) -> None:
    """Print the node table and a final summary panel for *report*."""
    table = Table(title="Nodes", show_header=True, header_style="bold cyan")
    table.add_column("Node", no_wrap=True)
    table.add_column("Generator", style="dim")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Details")
    for record in report.nodes:
        style = _STATUS_STYLE[record.status]
        details = record.error or (
            f"blocked by {', '.join(record.blocked_by)}" if record.blocked_by else ""
        )
        table.add_row(
            record.node_id,
            record.generator_id,
            f"[{style}]{record.status.value}[/{style}]",
            format_duration(record.duration_seconds),
            details,
        )
    console.print(table)

    print_summary_table(
        {
            "Files": str(len(report.files)),
            "Total size": format_size(sum(f.size for f in report.files)),
            "Env vars": ", ".join(report.env_vars) or "none",
            "Scripts": ", ".join(report.scripts) or "none",
            "Output": report.output_path or "(not written)",
        },
        title=f"Blueprint: {report.project}",
    )
    for warning in report.warnings:
        print_warning(warning)
    for suggestion in report.suggestions:
        console.print(f"[dim]hint: {suggestion}[/dim]")

    if report.success:
        border_style = "bold green"
        status_text = "[bold green]RUN SUCCEEDED[/bold green]"
    elif report.partial:
        border_style = "bold yellow"
        status_text = "[bold yellow]RUN PARTIALLY SUCCEEDED[/bold yellow]"
    else:
        border_style = "bold red"
        status_text = "[bold red]RUN FAILED[/bold red]"
    console.print(
        Panel(
            f"{status_text}\n\nDuration : {format_duration(report.duration_seconds)}\nRun id   : {report.run_id}",
            title="[bold]Blueprint Forge[/bold]",
            border_style=border_style,
        )
    )


def print_generators(registry: GeneratorRegistry) -> None:
    table = Table(title="Available generators", show_header=True, header_style="bold cyan")
    table.add_column("Id", no_wrap=True)
    table.add_column("Name")
    table.add_column("Category", style="dim")
    table.add_column("Requires")
    table.add_column("Ports")
    for descriptor in registry:
        table.add_row(
            descriptor.id,
            descriptor.metadata.name,
            descriptor.metadata.category,
            ", ".join(descriptor.requires) or "-",
            ", ".join(f"{p.id} ({p.direction})" for p in descriptor.ports) or "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``python -m blueprint_forge.orchestrator``."""
    import argparse

    from blueprint_forge.generators import build_default_registry

    parser = argparse.ArgumentParser(
        prog="blueprint-forge",
        description="Blueprint Forge -- compose generators into one project tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  blueprint-forge blueprint.json -o ./my-dapp\n"
            "  blueprint-forge blueprint.json --archive --overwrite\n"
            "  blueprint-forge --list-generators\n"
        ),
    )
    parser.add_argument("blueprint", nargs="?", help="Path to the blueprint JSON file")
    parser.add_argument("--output", "-o", default=None, help="Output directory or archive path")
    parser.add_argument("--archive", action="store_true", help="Write a .zip archive")
    parser.add_argument("--overwrite", action="store_true", help="Replace an existing output")
    parser.add_argument("--dry-run", action="store_true", help="Build and report, write nothing")
    parser.add_argument("--max-parallel", type=int, default=None, help="Concurrent generators")
    parser.add_argument("--timeout", type=float, default=None, help="Per-node timeout in seconds")
    parser.add_argument("--report", default=None, help="Write the run report JSON here")
    parser.add_argument("--list-generators", action="store_true", help="List generators and exit")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")

    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
        if args.output:
            config.materialize.output_dir = Path(args.output)
        if args.archive:
            config.materialize.archive = True
        if args.overwrite:
            config.materialize.overwrite = True
        if args.max_parallel is not None:
            config.run.max_parallel = args.max_parallel
        if args.timeout is not None:
            config.run.node_timeout = args.timeout
        if args.log_level:
            config.log_level = args.log_level.upper()
        config = Config.model_validate(config.model_dump())
    except (ValueError, ValidationError) as exc:
        print_error(f"Invalid configuration: {exc}")
        return 1

    configure_logging(config.log_level)
    registry = build_default_registry()

    if args.list_generators:
        print_generators(registry)
        return 0
    if not args.blueprint:
        parser.print_usage()
        print_error("A blueprint file is required")
        return 1

    blueprint_path = Path(args.blueprint)
    if not blueprint_path.exists():
        print_error(f"Blueprint file not found: {blueprint_path}")
        return 1
    try:
        graph = BlueprintGraph.load(blueprint_path)
    except ValidationError as exc:
        print_error(f"Invalid blueprint {blueprint_path}: {exc}")
        return 1

    print_header(f"Blueprint Forge: {graph.project.name}")
    orchestrator = Orchestrator(registry, config)
    try:
        report = asyncio.run(orchestrator.run(graph, materialize=not args.dry_run))
    except ForgeError as exc:
        print_error(f"{type(exc).__name__}: {exc}")
        return 1

    print_report(report)
    if args.report:
        report.save(args.report)
        console.print(f"  Report written to [bold]{args.report}[/bold]")

    if report.success:
        print_success("Blueprint generated successfully!")
        return 0
    print_error("Some nodes did not complete.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
