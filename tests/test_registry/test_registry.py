"""Unit tests for GeneratorRegistry and GeneratorDescriptor (blueprint_forge.registry)."""

from __future__ import annotations

import pytest

from blueprint_forge.errors import UnknownGeneratorError
from blueprint_forge.registry import GeneratorRegistry, Port

from conftest import make_descriptor

pytestmark = pytest.mark.unit


class TestPort:
    def test_accepts_same_type(self):
        out = Port(id="o", name="O", direction="output", data_type="contract")
        inp = Port(id="i", name="I", direction="input", data_type="contract")
        assert inp.accepts(out)

    def test_rejects_other_type(self):
        out = Port(id="o", name="O", direction="output", data_type="api")
        inp = Port(id="i", name="I", direction="input", data_type="contract")
        assert not inp.accepts(out)

    def test_any_matches(self):
        out = Port(id="o", name="O", direction="output", data_type="api")
        inp = Port(id="i", name="I", direction="input")
        assert inp.accepts(out)


class TestGeneratorDescriptor:
    def test_sequences_are_frozen(self):
        descriptor = make_descriptor(
            "gen",
            requires=["a"],
            suggests=["b"],
            path_mappings=[("src/**", "frontend-lib")],
            default_config={"label": "x"},
        )
        assert descriptor.requires == ("a",)
        assert descriptor.suggests == ("b",)
        assert descriptor.path_mappings == (("src/**", "frontend-lib"),)
        with pytest.raises(TypeError):
            descriptor.default_config["label"] = "y"

    def test_duplicate_port_ids(self):
        with pytest.raises(ValueError, match="duplicate port ids"):
            make_descriptor(
                "gen",
                ports=(
                    Port(id="p", name="P", direction="input"),
                    Port(id="p", name="P", direction="output"),
                ),
            )

    def test_port_helpers(self):
        descriptor = make_descriptor(
            "gen",
            ports=(
                Port(id="in", name="In", direction="input"),
                Port(id="out", name="Out", direction="output"),
            ),
        )
        assert descriptor.port("in").direction == "input"
        assert descriptor.port("missing") is None
        assert [p.id for p in descriptor.input_ports()] == ["in"]
        assert [p.id for p in descriptor.output_ports()] == ["out"]


class TestGeneratorRegistry:
    def test_lookup(self):
        registry = GeneratorRegistry([make_descriptor("a"), make_descriptor("b")])
        assert len(registry) == 2
        assert "a" in registry
        assert "z" not in registry
        assert registry.get("z") is None
        assert registry["b"].id == "b"
        assert registry.ids() == ["a", "b"]
        assert [d.id for d in registry] == ["a", "b"]

    def test_getitem_unknown(self):
        registry = GeneratorRegistry([make_descriptor("a")])
        with pytest.raises(UnknownGeneratorError):
            registry["missing"]

    def test_duplicate_registration(self):
        with pytest.raises(ValueError, match="already registered"):
            GeneratorRegistry([make_descriptor("a"), make_descriptor("a")])

    def test_allow_list(self):
        with pytest.raises(ValueError, match="not in the allowed list"):
            GeneratorRegistry([make_descriptor("a"), make_descriptor("b")], allowed_ids=["a"])

    def test_metadata_and_category(self):
        registry = GeneratorRegistry([make_descriptor("a"), make_descriptor("b")])
        assert registry.metadata()["a"].name == "A"
        assert len(registry.by_category("app")) == 2
        assert registry.by_category("contract") == []

    def test_default_registry_contents(self, default_registry):
        assert default_registry.ids() == [
            "frontend-scaffold",
            "wallet-auth",
            "erc20-stylus",
            "token-panel",
            "repo-quality-gates",
        ]
