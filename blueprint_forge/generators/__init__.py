"""Built-in generators.

These are thin template emitters.  They exist so a blueprint can be run
end to end out of the box; real projects register their own generators
alongside or instead of them.
"""

from __future__ import annotations

from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.generators import (
    erc20_stylus,
    frontend_scaffold,
    repo_quality_gates,
    token_panel,
    wallet_auth,
)
from blueprint_forge.registry import GeneratorDescriptor, GeneratorRegistry

_MODULES = (frontend_scaffold, wallet_auth, erc20_stylus, token_panel, repo_quality_gates)


def default_descriptors(renderer: TemplateRenderer | None = None) -> list[GeneratorDescriptor]:
    """Return a descriptor for every built-in generator."""
    renderer = renderer or TemplateRenderer()
    return [module.descriptor(renderer) for module in _MODULES]


def build_default_registry(renderer: TemplateRenderer | None = None) -> GeneratorRegistry:
    """Return a registry holding the built-in generators."""
    return GeneratorRegistry(default_descriptors(renderer))


__all__ = ["build_default_registry", "default_descriptors"]
