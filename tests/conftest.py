"""Shared pytest fixtures for the Blueprint Forge test suite.

Provides reusable fixtures for:
- Project metadata and blueprint graphs
- Fake generator descriptors with controllable behaviour
- Execution contexts for calling generators directly
- The built-in generator registry
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest
from pydantic import BaseModel, Field, field_validator

from blueprint_forge.codegen import CodegenOutput, ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.generators import build_default_registry
from blueprint_forge.graph import BlueprintGraph, ProjectMetadata
from blueprint_forge.registry import GeneratorDescriptor, GeneratorMetadata, GeneratorRegistry, Port
from blueprint_forge.utils import node_logger


# ---------------------------------------------------------------------------
# Fake generators
# ---------------------------------------------------------------------------


class EchoConfig(BaseModel):
    """Config schema used by fake generators."""

    label: str = Field(default="echo")
    count: int = Field(default=1, ge=0)


class BrokenConfig(EchoConfig):
    """Schema whose validator has a bug of its own."""

    @field_validator("label")
    @classmethod
    def _shout(cls, v: str) -> str:
        return v.upper() + 1


def echo_generate(node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
    """Emit one file named after the node under the ``root`` category."""
    output = CodegenOutput()
    output.add_file(f"{node.id}.txt", f"{node.config.label}\n", "root")
    return output


def make_descriptor(
    generator_id: str,
    generate: Callable[..., Any] = echo_generate,
    **kwargs: Any,
) -> GeneratorDescriptor:
    """Build a descriptor around *generate* with :class:`EchoConfig`."""
    kwargs.setdefault("config_schema", EchoConfig)
    return GeneratorDescriptor(
        id=generator_id,
        metadata=GeneratorMetadata(name=generator_id.replace("-", " ").title()),
        generate=generate,
        **kwargs,
    )


def make_graph(nodes: list[dict[str, Any]], wires: list[dict[str, Any]] | None = None) -> BlueprintGraph:
    """Build a blueprint from plain dicts the way it arrives as JSON."""
    return BlueprintGraph.model_validate(
        {"project": {"name": "Test dApp"}, "nodes": nodes, "wires": wires or []}
    )


def make_context(
    node_id: str = "node",
    present: frozenset[str] | set[str] = frozenset(),
    inputs: dict[str, dict[str, Any]] | None = None,
) -> ExecutionContext:
    return ExecutionContext(
        node_id=node_id,
        project=ProjectMetadata(name="Test dApp", description="A test project"),
        path_context=frozenset(present),
        logger=node_logger(node_id),
        inputs=inputs or {},
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project() -> ProjectMetadata:
    return ProjectMetadata(name="Test dApp", description="A test project", version="1.2.3")


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def default_registry(renderer: TemplateRenderer) -> GeneratorRegistry:
    return build_default_registry(renderer)


@pytest.fixture
def fake_registry() -> GeneratorRegistry:
    """Registry with a small dependency chain and a wired port pair.

    ``base`` <- ``addon`` (requires), ``producer.data-out`` -> ``consumer.data-in``.
    """

    def producer(node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        output = echo_generate(node, context)
        output.publish("data-out", label=node.config.label, secret="s3cret", nested={"n": 1})
        return output

    async def consumer(node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        await asyncio.sleep(0)
        output = CodegenOutput()
        data = context.input("data-in")
        output.add_file(f"{node.id}.txt", f"got {data.get('label')}\n", "root")
        return output

    return GeneratorRegistry(
        [
            make_descriptor("base"),
            make_descriptor("addon", requires=("base",), suggests=("extra",)),
            make_descriptor(
                "producer",
                generate=producer,
                ports=(Port(id="data-out", name="Data", direction="output", data_type="api"),),
            ),
            make_descriptor(
                "consumer",
                generate=consumer,
                ports=(
                    Port(id="data-in", name="Data", direction="input", data_type="api", required=True),
                ),
            ),
        ]
    )


@pytest.fixture
def full_blueprint() -> BlueprintGraph:
    """Blueprint using every built-in generator."""
    return BlueprintGraph.model_validate(
        {
            "project": {
                "name": "Token Dashboard",
                "description": "Stylus token with a wallet-enabled dashboard",
            },
            "nodes": [
                {"id": "web", "generator": "frontend-scaffold", "config": {"app_name": "Token Dashboard"}},
                {"id": "wallet", "generator": "wallet-auth", "config": {"app_name": "Token Dashboard"}},
                {
                    "id": "token",
                    "generator": "erc20-stylus",
                    "config": {"token_name": "Forge Token", "token_symbol": "FRG"},
                },
                {"id": "panel", "generator": "token-panel", "config": {"title": "Forge balance"}},
                {"id": "gates", "generator": "repo-quality-gates"},
            ],
            "wires": [
                {
                    "source": "token",
                    "source_port": "contract-out",
                    "target": "panel",
                    "target_port": "contract-in",
                }
            ],
        }
    )
