"""End-to-end tests for the Orchestrator with the built-in generators.

Tests cover:
- Full blueprint: tree layout, merged files, aggregated artifacts
- Deterministic output across runs
- Unrelated sibling nodes leave existing output unchanged
- Failure isolation and partial reports
- Graph and merge errors abort before anything is written
- Directory and archive materialization
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
import zipfile
from pathlib import Path

import pytest
import yaml

from blueprint_forge.config import Config, MaterializeSettings, RunSettings
from blueprint_forge.engine import NodeStatus, materialize
from blueprint_forge.errors import CyclicDependencyError, HardConflictError, MissingDependencyError
from blueprint_forge.generators import default_descriptors
from blueprint_forge.graph import BlueprintGraph, Node
from blueprint_forge.orchestrator import Orchestrator, RunReport
from blueprint_forge.registry import GeneratorRegistry
from blueprint_forge.routing import PathRoutingTable, RoutingRule, default_routing_table

from conftest import make_descriptor, make_graph

pytestmark = pytest.mark.integration

EXPECTED_PATHS = {
    "/.editorconfig",
    "/.env.example",
    "/.github/workflows/ci.yml",
    "/.gitignore",
    "/README.md",
    "/apps/web/next.config.js",
    "/apps/web/package.json",
    "/apps/web/src/app/layout.tsx",
    "/apps/web/src/app/page.tsx",
    "/apps/web/src/components/ConnectButton.tsx",
    "/apps/web/src/components/FrgPanel.tsx",
    "/apps/web/src/components/WalletStatus.tsx",
    "/apps/web/src/hooks/use-chain-guard.ts",
    "/apps/web/src/hooks/use-token-balance.ts",
    "/apps/web/src/hooks/use-wallet.ts",
    "/apps/web/src/lib/constants.ts",
    "/apps/web/src/lib/erc20-abi.ts",
    "/apps/web/src/lib/index.ts",
    "/apps/web/src/lib/utils.ts",
    "/apps/web/src/lib/wallet-config.ts",
    "/apps/web/src/styles/globals.css",
    "/apps/web/src/types/types.ts",
    "/apps/web/tsconfig.json",
    "/contracts/forge-token/Cargo.toml",
    "/contracts/forge-token/src/lib.rs",
    "/docs/README.md",
    "/docs/erc20-token.md",
    "/docs/frontend.md",
    "/docs/quality-gates.md",
    "/docs/token-panel.md",
    "/docs/wallet-auth.md",
    "/package.json",
    "/packages/wallet-auth/README.md",
    "/scripts/deploy-erc20.ts",
}


def _orchestrator(registry, tmp_path: Path, **materialize) -> Orchestrator:
    config = Config(
        run=RunSettings(max_parallel=3, node_timeout=10),
        materialize=MaterializeSettings(output_dir=tmp_path / "out", **materialize),
    )
    return Orchestrator(registry, config)


def _text(tree, path: str) -> str:
    return tree.get(path).content


# ---------------------------------------------------------------------------
# Full blueprint
# ---------------------------------------------------------------------------


class TestFullBlueprint:
    @pytest.mark.asyncio
    async def test_tree_layout(self, default_registry, full_blueprint, tmp_path):
        tree, report = await _orchestrator(default_registry, tmp_path).generate(full_blueprint)
        assert set(tree) == EXPECTED_PATHS
        assert report.success
        assert not report.partial
        assert report.order == ["web", "wallet", "token", "panel", "gates"]

    @pytest.mark.asyncio
    async def test_merged_files(self, default_registry, full_blueprint, tmp_path):
        tree, _ = await _orchestrator(default_registry, tmp_path).generate(full_blueprint)

        assert _text(tree, "/apps/web/src/lib/index.ts") == (
            "export * from './utils';\nexport * from './wallet-config';\n"
        )
        types = _text(tree, "/apps/web/src/types/types.ts")
        assert "export interface WalletState" in types
        assert "export interface TokenInfo" in types

        gitignore = _text(tree, "/.gitignore").splitlines()
        assert gitignore.count("node_modules/") == 1
        assert {".next/", "coverage/", "target/"} <= set(gitignore)
        assert tree.get("/.gitignore").contributors == ["web", "gates"]

    @pytest.mark.asyncio
    async def test_root_package_json(self, default_registry, full_blueprint, tmp_path):
        tree, report = await _orchestrator(default_registry, tmp_path).generate(full_blueprint)
        manifest = json.loads(_text(tree, "/package.json"))
        assert manifest["name"] == "token-dashboard"
        assert manifest["private"] is True
        assert "vitest" in manifest["devDependencies"]
        assert list(manifest["scripts"]) == [
            "dev",
            "build",
            "start",
            "wallet:setup",
            "deploy:token",
            "contract:check",
            "lint",
            "test",
            "typecheck",
        ]
        assert report.scripts["deploy:token"] == "ts-node scripts/deploy-erc20.ts"
        assert report.interfaces == ["frgAbi (abi) from token"]
        assert tree.get("/package.json").contributors == ["gates", "manifest"]

    @pytest.mark.asyncio
    async def test_env_example_and_warnings(self, default_registry, full_blueprint, tmp_path):
        tree, report = await _orchestrator(default_registry, tmp_path).generate(full_blueprint)
        env = _text(tree, "/.env.example")
        assert env.count("NEXT_PUBLIC_APP_NAME=") == 1
        assert "NEXT_PUBLIC_APP_NAME=Token Dashboard" in env
        assert "PRIVATE_KEY=\n" in env
        assert report.env_vars[0] == "NEXT_PUBLIC_APP_NAME"
        assert len(report.warnings) == 1
        assert "NEXT_PUBLIC_APP_NAME" in report.warnings[0]

    @pytest.mark.asyncio
    async def test_docs_index(self, default_registry, full_blueprint, tmp_path):
        tree, _ = await _orchestrator(default_registry, tmp_path).generate(full_blueprint)
        index = _text(tree, "/docs/README.md")
        assert "[frontend.md](frontend.md) (`web`)" in index
        assert "## Forge Token (FRG)" in index
        assert index.index("## Frontend") < index.index("## Quality gates")

    @pytest.mark.asyncio
    async def test_workflow_has_contract_job(self, default_registry, full_blueprint, tmp_path):
        tree, _ = await _orchestrator(default_registry, tmp_path).generate(full_blueprint)
        workflow = yaml.safe_load(_text(tree, "/.github/workflows/ci.yml"))
        assert set(workflow["jobs"]) == {"checks", "contracts"}

    @pytest.mark.asyncio
    async def test_output_is_deterministic(self, default_registry, full_blueprint, tmp_path):
        orchestrator = _orchestrator(default_registry, tmp_path)
        first, _ = await orchestrator.generate(full_blueprint)
        second, _ = await orchestrator.generate(full_blueprint)
        assert first.snapshot() == second.snapshot()
        serial = Orchestrator(default_registry, Config(run=RunSettings(max_parallel=1)))
        third, _ = await serial.generate(full_blueprint)
        assert third.snapshot() == first.snapshot()

    @pytest.mark.asyncio
    async def test_materializes_directory(self, default_registry, full_blueprint, tmp_path):
        report = await _orchestrator(default_registry, tmp_path).run(full_blueprint)
        out = Path(report.output_path)
        assert out == (tmp_path / "out").resolve()
        assert (out / "contracts" / "forge-token" / "Cargo.toml").is_file()
        assert (out / "apps" / "web" / "src" / "components" / "FrgPanel.tsx").is_file()
        assert {f.path for f in report.files} == EXPECTED_PATHS

    @pytest.mark.asyncio
    async def test_materializes_archive(self, default_registry, full_blueprint, tmp_path):
        report = await _orchestrator(default_registry, tmp_path, archive=True).run(full_blueprint)
        assert report.output_path == str((tmp_path / "out.zip").resolve())
        with zipfile.ZipFile(report.output_path) as archive:
            assert "apps/web/src/lib/index.ts" in archive.namelist()

    @pytest.mark.asyncio
    async def test_without_materialize(self, default_registry, full_blueprint, tmp_path):
        report = await _orchestrator(default_registry, tmp_path).run(full_blueprint, materialize=False)
        assert report.output_path is None
        assert not (tmp_path / "out").exists()


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


class TestIsolation:
    @pytest.mark.asyncio
    async def test_unrelated_sibling_leaves_existing_output_alone(self, full_blueprint, tmp_path):
        registry = GeneratorRegistry([*default_descriptors(), make_descriptor("sidecar")])
        orchestrator = _orchestrator(registry, tmp_path)
        before, _ = await orchestrator.generate(full_blueprint)

        extended = full_blueprint.model_copy(
            update={"nodes": [*full_blueprint.nodes, Node(id="side", generator_id="sidecar")]}
        )
        after, report = await orchestrator.generate(extended)

        assert report.order[-1] == "side"
        assert set(after) == set(before) | {"/side.txt"}
        for path, entry in before.items():
            assert after.get(path).content == entry.content, path
            assert after.get(path).contributors == entry.contributors, path
        assert after.get("/side.txt").contributors == ["side"]


# ---------------------------------------------------------------------------
# Layout without a frontend scaffold
# ---------------------------------------------------------------------------


class TestStandaloneLayout:
    @pytest.mark.asyncio
    async def test_wallet_without_scaffold(self, default_registry, tmp_path):
        graph = BlueprintGraph.model_validate(
            {"project": {"name": "Wallet Kit"}, "nodes": [{"id": "wallet", "generator": "wallet-auth"}]}
        )
        tree, report = await _orchestrator(default_registry, tmp_path).generate(graph)
        assert "/src/hooks/use-wallet.ts" in tree
        assert "/src/lib/index.ts" in tree
        assert "/src/components/WalletStatus.tsx" in tree
        assert report.suggestions == ["wallet works best with frontend-scaffold"]

    @pytest.mark.asyncio
    async def test_custom_routing_table(self, default_registry, tmp_path):
        table = default_routing_table().extended(
            [RoutingRule("frontend-hooks", "{web}/hooks", when_present=frozenset({"frontend-scaffold"}))]
        )
        orchestrator = Orchestrator(default_registry, routing_table=table)
        graph = BlueprintGraph.model_validate(
            {
                "project": {"name": "Demo"},
                "nodes": [
                    {"id": "web", "generator": "frontend-scaffold"},
                    {"id": "wallet", "generator": "wallet-auth"},
                ],
            }
        )
        tree, _ = await orchestrator.generate(graph)
        assert "/apps/web/hooks/use-wallet.ts" in tree
        assert isinstance(table, PathRoutingTable)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    async def test_schema_failure_isolates_branch(self, default_registry, full_blueprint, tmp_path):
        data = full_blueprint.model_dump(by_alias=True)
        data["nodes"][2]["config"]["token_symbol"] = "not a symbol"
        graph = BlueprintGraph.model_validate(data)

        report = await _orchestrator(default_registry, tmp_path).run(graph)
        assert not report.success
        assert report.partial
        assert report.node("token").status is NodeStatus.FAILED
        assert "token_symbol" in report.node("token").error
        assert report.node("panel").status is NodeStatus.SKIPPED
        assert report.node("panel").blocked_by == ["token"]
        assert report.node("wallet").status is NodeStatus.SUCCEEDED
        assert report.node("gates").status is NodeStatus.SUCCEEDED

        out = Path(report.output_path)
        assert (out / "apps" / "web" / "src" / "hooks" / "use-wallet.ts").is_file()
        assert not (out / "contracts").exists()
        assert "deploy:token" not in report.scripts

    @pytest.mark.asyncio
    async def test_cycle_writes_nothing(self, tmp_path):
        registry = GeneratorRegistry(
            [make_descriptor("x", requires=("y",)), make_descriptor("y", requires=("x",))]
        )
        graph = make_graph([{"id": "a", "generator": "x"}, {"id": "b", "generator": "y"}])
        with pytest.raises(CyclicDependencyError):
            await _orchestrator(registry, tmp_path).run(graph)
        assert not (tmp_path / "out").exists()

    @pytest.mark.asyncio
    async def test_missing_dependency(self, default_registry, tmp_path):
        graph = BlueprintGraph.model_validate(
            {"project": {"name": "Demo"}, "nodes": [{"id": "panel", "generator": "token-panel"}]}
        )
        with pytest.raises(MissingDependencyError):
            await _orchestrator(default_registry, tmp_path).run(graph)

    @pytest.mark.asyncio
    async def test_hard_conflict_writes_nothing(self, default_registry, tmp_path):
        graph = BlueprintGraph.model_validate(
            {
                "project": {"name": "Demo"},
                "nodes": [
                    {"id": "web1", "generator": "frontend-scaffold", "config": {"app_name": "One"}},
                    {"id": "web2", "generator": "frontend-scaffold", "config": {"app_name": "Two"}},
                ],
            }
        )
        with pytest.raises(HardConflictError) as exc_info:
            await _orchestrator(default_registry, tmp_path).run(graph)
        assert exc_info.value.first_node == "web1"
        assert exc_info.value.second_node == "web2"
        assert not (tmp_path / "out").exists()

    @pytest.mark.asyncio
    async def test_cancel_during_write_leaves_no_output(self, fake_registry, tmp_path, monkeypatch):
        writing = threading.Event()
        encode = materialize._encode

        def slow_encode(content):
            writing.set()
            time.sleep(0.2)
            return encode(content)

        monkeypatch.setattr(materialize, "_encode", slow_encode)
        graph = make_graph([{"id": "core", "generator": "base"}])
        task = asyncio.create_task(_orchestrator(fake_registry, tmp_path).run(graph))
        assert await asyncio.to_thread(writing.wait, 5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        deadline = time.monotonic() + 5
        while any(tmp_path.iterdir()) and time.monotonic() < deadline:
            await asyncio.sleep(0.05)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_all_nodes_failed(self, tmp_path):
        def broken(node, context):
            raise RuntimeError("nope")

        registry = GeneratorRegistry([make_descriptor("broken", generate=broken)])
        report = await _orchestrator(registry, tmp_path).run(make_graph([{"id": "b", "generator": "broken"}]))
        assert not report.success
        assert not report.partial
        assert [f.path for f in report.files] == ["/README.md"]


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class TestRunReport:
    @pytest.mark.asyncio
    async def test_save_and_load(self, fake_registry, tmp_path):
        graph = make_graph([{"id": "core", "generator": "base"}, {"id": "ext", "generator": "addon"}])
        report = await _orchestrator(fake_registry, tmp_path).run(graph, materialize=False)
        path = report.save(tmp_path / "reports" / "run.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["success"] is True
        assert data["partial"] is False
        assert data["nodes"][0]["status"] == "succeeded"
        assert data["suggestions"] == ["ext works best with extra"]
        loaded = RunReport.model_validate({k: v for k, v in data.items() if k not in ("success", "partial")})
        assert loaded.node("ext").status is NodeStatus.SUCCEEDED
