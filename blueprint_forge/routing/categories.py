"""Path categories and the declarative routing table.

A category names the *kind* of file a generator emits (a React hook, a
contract source, a deploy script...).  The routing table turns a category
into a directory, depending on which generators are present in the
blueprint.  Rules are evaluated in order and the first rule whose
conditions hold wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal

PathCategory = Literal[
    "frontend-app",
    "frontend-components",
    "frontend-hooks",
    "frontend-lib",
    "frontend-types",
    "frontend-styles",
    "frontend-public",
    "frontend-root",
    "backend-routes",
    "backend-services",
    "backend-middleware",
    "backend-lib",
    "backend-types",
    "contract",
    "contract-test",
    "contract-source",
    "contract-scripts",
    "docs",
    "root",
    "shared-types",
]

FRONTEND_MARKER = "frontend-scaffold"
BACKEND_MARKER = "backend-scaffold"

# category -> subdirectory inside its domain's source root
FRONTEND_SUBDIRS: dict[str, str] = {
    "frontend-app": "app",
    "frontend-components": "components",
    "frontend-hooks": "hooks",
    "frontend-lib": "lib",
    "frontend-types": "types",
    "frontend-styles": "styles",
}
BACKEND_SUBDIRS: dict[str, str] = {
    "backend-routes": "routes",
    "backend-services": "services",
    "backend-middleware": "middleware",
    "backend-lib": "lib",
    "backend-types": "types",
}


@dataclass(frozen=True)
class RoutingRule:
    """Route *category* to *directory* when the presence conditions hold.

    ``directory`` may contain ``str.format`` placeholders that are filled
    from the table's variables, e.g. ``"{web_src}/hooks"``.
    """

    category: str
    directory: str
    when_present: frozenset[str] = frozenset()
    when_absent: frozenset[str] = frozenset()

    def matches(self, category: str, present_ids: frozenset[str]) -> bool:
        return (
            category == self.category
            and self.when_present <= present_ids
            and not (self.when_absent & present_ids)
        )


@dataclass(frozen=True)
class PathRoutingTable:
    """Ordered routing rules plus the variables their directories use."""

    rules: tuple[RoutingRule, ...]
    variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def lookup(self, category: str, present_ids: frozenset[str]) -> str | None:
        """Return the formatted directory of the first matching rule."""
        for rule in self.rules:
            if rule.matches(category, present_ids):
                return rule.directory.format(**self.variables)
        return None

    def categories(self) -> set[str]:
        return {rule.category for rule in self.rules}

    def extended(self, rules: Iterable[RoutingRule]) -> "PathRoutingTable":
        """Return a copy with *rules* evaluated before the existing ones."""
        return PathRoutingTable(rules=(*rules, *self.rules), variables=self.variables)


def _rule(category: str, directory: str, present: Iterable[str] = (), absent: Iterable[str] = ()) -> RoutingRule:
    return RoutingRule(category, directory, frozenset(present), frozenset(absent))


def default_routing_table() -> PathRoutingTable:
    """Build the stock routing table.

    With a frontend scaffold present, frontend files nest inside the web app;
    without one they form a standalone ``src/`` library.  Backend code goes
    to the API app when a backend scaffold exists, falls back into the web
    app otherwise, and lands in ``src/lib`` when neither scaffold exists.
    """
    rules: list[RoutingRule] = []

    for category, subdir in FRONTEND_SUBDIRS.items():
        rules.append(_rule(category, "{web_src}/" + subdir, present=[FRONTEND_MARKER]))
        rules.append(_rule(category, "src/" + subdir))
    rules.append(_rule("frontend-public", "{web}/public", present=[FRONTEND_MARKER]))
    rules.append(_rule("frontend-public", "public"))
    rules.append(_rule("frontend-root", "{web}", present=[FRONTEND_MARKER]))
    rules.append(_rule("frontend-root", ""))

    for category, subdir in BACKEND_SUBDIRS.items():
        rules.append(_rule(category, "{api_src}/" + subdir, present=[BACKEND_MARKER]))
        fallback = "{web_src}/app/api" if category == "backend-routes" else "{web_src}/lib"
        rules.append(_rule(category, fallback, present=[FRONTEND_MARKER]))
        rules.append(_rule(category, "src/lib"))

    rules.extend(
        [
            _rule("contract", "{contracts}"),
            _rule("contract-source", "{contracts}"),
            _rule("contract-test", "{contracts}/tests"),
            _rule("contract-scripts", "scripts"),
            _rule("docs", "docs"),
            _rule("root", ""),
            _rule("shared-types", "shared/types"),
        ]
    )
    return PathRoutingTable(
        rules=tuple(rules),
        variables={
            "web": "apps/web",
            "web_src": "apps/web/src",
            "api_src": "apps/api/src",
            "contracts": "contracts",
        },
    )
