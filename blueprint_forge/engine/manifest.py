"""Cross-cutting artifacts collected from every committed node.

Environment variables, run scripts and documentation are declared by
individual generators but belong to the project as a whole.  The
:class:`ManifestAggregator` folds them together in commit order and writes
the project-level files (``.env.example``, ``package.json`` scripts, the
docs index and a fallback ``README.md``).
"""

from __future__ import annotations

import json
import logging
import posixpath
from dataclasses import dataclass, field

from blueprint_forge.codegen.output import CodegenOutput, Interface
from blueprint_forge.engine.merger import OutputMerger
from blueprint_forge.errors import EnvVarConflictWarning, HardConflictError, ScriptConflictError
from blueprint_forge.graph.models import ProjectMetadata
from blueprint_forge.utils import slugify

logger = logging.getLogger(__name__)

MANIFEST_NODE = "manifest"
ENV_EXAMPLE_PATH = "/.env.example"
PACKAGE_JSON_PATH = "/package.json"
DOCS_INDEX_PATH = "/docs/README.md"
README_PATH = "/README.md"


@dataclass
class AggregatedEnvVar:
    name: str
    description: str
    required: bool
    secret: bool
    default: str | None
    sources: list[str] = field(default_factory=list)


@dataclass
class AggregatedScript:
    name: str
    command: str
    description: str | None
    sources: list[str] = field(default_factory=list)


@dataclass
class AggregatedDoc:
    node_id: str
    path: str
    title: str
    content: str


@dataclass
class ManifestSummary:
    """Everything the aggregator collected, in first-seen order."""

    env_vars: list[AggregatedEnvVar] = field(default_factory=list)
    scripts: list[AggregatedScript] = field(default_factory=list)
    docs: list[AggregatedDoc] = field(default_factory=list)
    interfaces: list[tuple[str, Interface]] = field(default_factory=list)
    warnings: list[EnvVarConflictWarning] = field(default_factory=list)


class ManifestAggregator:
    """Folds per-node env vars, scripts and docs into project-level files."""

    def __init__(self, project: ProjectMetadata) -> None:
        self.project = project

    # -- Collection ------------------------------------------------------------

    def aggregate(self, committed: list[tuple[str, CodegenOutput]]) -> ManifestSummary:
        """Collect artifacts from ``(node_id, output)`` pairs in commit order.

        Raises:
            ScriptConflictError: Two nodes declare one script name with
                different commands.
        """
        summary = ManifestSummary()
        env_by_name: dict[str, AggregatedEnvVar] = {}
        scripts_by_name: dict[str, AggregatedScript] = {}

        for node_id, output in committed:
            for var in output.env_vars:
                known = env_by_name.get(var.name)
                if known is None:
                    known = AggregatedEnvVar(
                        name=var.name,
                        description=var.description,
                        required=var.required,
                        secret=var.secret,
                        default=var.default or None,
                    )
                    env_by_name[var.name] = known
                    summary.env_vars.append(known)
                else:
                    if var.description != known.description:
                        warning = EnvVarConflictWarning(var.name, known.description, var.description, node_id)
                        logger.warning("%s", warning)
                        summary.warnings.append(warning)
                    known.required = known.required or var.required
                    known.secret = known.secret or var.secret
                    if not known.default and var.default:
                        known.default = var.default
                if node_id not in known.sources:
                    known.sources.append(node_id)

            for script in output.scripts:
                known_script = scripts_by_name.get(script.name)
                if known_script is None:
                    known_script = AggregatedScript(script.name, script.command, script.description)
                    scripts_by_name[script.name] = known_script
                    summary.scripts.append(known_script)
                elif known_script.command != script.command:
                    raise ScriptConflictError(script.name, known_script.command, script.command)
                if node_id not in known_script.sources:
                    known_script.sources.append(node_id)

            for doc in output.docs:
                summary.docs.append(AggregatedDoc(node_id, doc.path, doc.title, doc.content))
            for interface in output.interfaces:
                summary.interfaces.append((node_id, interface))

        return summary

    # -- Rendering ---------------------------------------------------------------

    def apply(self, summary: ManifestSummary, merger: OutputMerger) -> list[str]:
        """Write the project-level files into *merger*'s tree.

        Returns the tree paths written or updated.
        """
        written: list[str] = []
        if summary.env_vars:
            merger.write(ENV_EXAMPLE_PATH, self.render_env_example(summary), MANIFEST_NODE)
            written.append(ENV_EXAMPLE_PATH)

        if summary.scripts or PACKAGE_JSON_PATH in merger.tree:
            merger.replace(PACKAGE_JSON_PATH, self._package_json(summary, merger), MANIFEST_NODE)
            written.append(PACKAGE_JSON_PATH)

        if summary.docs:
            if DOCS_INDEX_PATH in merger.tree:
                logger.warning("%s was written by a generator; not generating the docs index", DOCS_INDEX_PATH)
            else:
                merger.write(DOCS_INDEX_PATH, self.render_docs_index(summary, merger), MANIFEST_NODE)
                written.append(DOCS_INDEX_PATH)

        if README_PATH not in merger.tree:
            merger.write(README_PATH, self.render_readme(summary), MANIFEST_NODE)
            written.append(README_PATH)
        return written

    def render_env_example(self, summary: ManifestSummary) -> str:
        lines = [
            f"# Environment variables for {self.project.name}",
            "# Copy this file to .env and fill in the values.",
        ]
        for var in summary.env_vars:
            flags = "required" if var.required else "optional"
            if var.secret:
                flags += ", secret"
            lines.append("")
            lines.append(f"# {var.description} ({flags})")
            lines.append(f"{var.name}={'' if var.secret else var.default or ''}")
        return "\n".join(lines) + "\n"

    def _package_json(self, summary: ManifestSummary, merger: OutputMerger) -> str:
        entry = merger.tree.get(PACKAGE_JSON_PATH)
        manifest: dict = {}
        if entry is not None:
            if not isinstance(entry.content, str):
                raise HardConflictError(PACKAGE_JSON_PATH, entry.node_id, MANIFEST_NODE, "binary manifest")
            try:
                manifest = json.loads(entry.content)
            except json.JSONDecodeError as exc:
                raise HardConflictError(
                    PACKAGE_JSON_PATH, entry.node_id, MANIFEST_NODE, f"invalid JSON: {exc.msg}"
                ) from exc

        manifest.setdefault("name", slugify(self.project.name) or "project")
        manifest.setdefault("version", self.project.version)
        manifest.setdefault("private", True)
        if self.project.description:
            manifest.setdefault("description", self.project.description)
        if self.project.author:
            manifest.setdefault("author", self.project.author)
        if self.project.keywords:
            manifest.setdefault("keywords", list(self.project.keywords))
        manifest.setdefault("license", self.project.license)

        scripts = manifest.setdefault("scripts", {})
        for script in summary.scripts:
            current = scripts.get(script.name)
            if current is not None and current != script.command:
                raise ScriptConflictError(script.name, current, script.command)
            scripts[script.name] = script.command
        return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"

    def render_docs_index(self, summary: ManifestSummary, merger: OutputMerger) -> str:
        sections = [f"# {self.project.name} documentation"]
        for doc in summary.docs:
            target = merger.resolver.resolve("docs", doc.path, merger.present_ids)
            link = posixpath.relpath(target, posixpath.dirname(DOCS_INDEX_PATH))
            sections.append(
                f"## {doc.title}\n\n{doc.content.rstrip()}\n\n"
                f"Source: [{link}]({link}) (`{doc.node_id}`)"
            )
        return "\n\n".join(sections) + "\n"

    def render_readme(self, summary: ManifestSummary) -> str:
        parts = [f"# {self.project.name}"]
        if self.project.description:
            parts.append(self.project.description)

        required = [var for var in summary.env_vars if var.required]
        if required:
            rows = ["| Variable | Description |", "| --- | --- |"]
            rows.extend(f"| `{var.name}` | {var.description} |" for var in required)
            parts.append("## Environment\n\nCopy `.env.example` to `.env` and set:\n\n" + "\n".join(rows))

        if summary.scripts:
            lines = [
                f"- `npm run {script.name}`" + (f": {script.description}" if script.description else "")
                for script in summary.scripts
            ]
            parts.append("## Scripts\n\n" + "\n".join(lines))

        if summary.docs:
            parts.append("## Documentation\n\nSee [docs/README.md](docs/README.md).")
        return "\n\n".join(parts) + "\n"
