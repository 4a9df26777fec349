"""CI workflow, lint/test scripts and repository hygiene files."""

from __future__ import annotations

import json
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from blueprint_forge.codegen import CodegenOutput, ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.registry import GeneratorDescriptor, GeneratorMetadata

_LINT_COMMANDS = {"eslint": "eslint .", "biome": "biome check ."}
_TEST_COMMANDS = {"vitest": "vitest run", "jest": "jest"}
_DEV_DEPENDENCIES = {
    "eslint": {"eslint": "^9.0.0"},
    "biome": {"@biomejs/biome": "^1.8.0"},
    "vitest": {"vitest": "^2.0.0"},
    "jest": {"jest": "^29.7.0"},
}


class QualityGatesConfig(BaseModel):
    node_version: str = Field(default="20", pattern=r"^\d+$")
    package_manager: Literal["npm", "pnpm", "yarn"] = Field(default="npm")
    linter: Literal["eslint", "biome"] = Field(default="eslint")
    test_runner: Literal["vitest", "jest"] = Field(default="vitest")
    branches: list[str] = Field(default_factory=lambda: ["main"], min_length=1)


class QualityGatesGenerator:
    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def generate(self, node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        config: QualityGatesConfig = node.config  # type: ignore[assignment]
        rust = context.has("erc20-stylus")
        output = CodegenOutput()

        output.add_file(".github/workflows/ci.yml", render_workflow(config, rust), "root")
        output.add_file(".gitignore", "node_modules/\ncoverage/\n.env\n" + ("target/\n" if rust else ""), "root")
        output.add_file(
            ".editorconfig",
            self.renderer.render("repo-quality-gates/editorconfig.j2", {"rust": rust}),
            "root",
        )
        dev_dependencies = {
            **_DEV_DEPENDENCIES[config.linter],
            **_DEV_DEPENDENCIES[config.test_runner],
            "typescript": "^5.4.0",
        }
        output.add_file(
            "package.json",
            json.dumps({"private": True, "devDependencies": dev_dependencies}, indent=2) + "\n",
            "root",
        )

        output.add_script("lint", _LINT_COMMANDS[config.linter], "Run the linter")
        output.add_script("test", _TEST_COMMANDS[config.test_runner], "Run the test suite")
        output.add_script("typecheck", "tsc --noEmit", "Type-check the project")
        output.add_doc(
            "quality-gates.md",
            "Quality gates",
            self.renderer.render(
                "repo-quality-gates/docs.md.j2",
                {
                    "linter": config.linter,
                    "test_runner": config.test_runner,
                    "package_manager": config.package_manager,
                    "rust": rust,
                },
            ),
        )
        return output


def render_workflow(config: QualityGatesConfig, rust: bool) -> str:
    """Build the GitHub Actions workflow as YAML."""
    install = {"npm": "npm ci", "pnpm": "pnpm install --frozen-lockfile", "yarn": "yarn install --frozen-lockfile"}
    run = config.package_manager
    steps: list[dict[str, Any]] = [
        {"uses": "actions/checkout@v4"},
        {"uses": "actions/setup-node@v4", "with": {"node-version": config.node_version, "cache": run}},
        {"run": install[run]},
        {"name": "Lint", "run": f"{run} run lint"},
        {"name": "Type check", "run": f"{run} run typecheck"},
        {"name": "Test", "run": f"{run} run test"},
    ]
    if run == "pnpm":
        steps.insert(1, {"uses": "pnpm/action-setup@v4"})

    jobs: dict[str, Any] = {"checks": {"runs-on": "ubuntu-latest", "steps": steps}}
    if rust:
        jobs["contracts"] = {
            "runs-on": "ubuntu-latest",
            "steps": [
                {"uses": "actions/checkout@v4"},
                {"uses": "dtolnay/rust-toolchain@stable"},
                {"name": "Test contracts", "run": "cargo test --workspace", "working-directory": "contracts"},
            ],
        }

    workflow = {
        "name": "CI",
        "on": {
            "push": {"branches": list(config.branches)},
            "pull_request": {"branches": list(config.branches)},
        },
        "jobs": jobs,
    }
    return yaml.safe_dump(workflow, sort_keys=False, default_flow_style=False)


def descriptor(renderer: TemplateRenderer) -> GeneratorDescriptor:
    generator = QualityGatesGenerator(renderer)
    return GeneratorDescriptor(
        id="repo-quality-gates",
        metadata=GeneratorMetadata(
            name="Repo Quality Gates",
            description="CI workflow with lint, type-check and test gates",
            category="tooling",
            tags=("ci", "lint", "testing"),
        ),
        config_schema=QualityGatesConfig,
        generate=generator.generate,
        compatible_with=("frontend-scaffold", "erc20-stylus"),
    )
