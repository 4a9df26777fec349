"""Merge strategies for files several generators may legitimately share.

Each strategy takes the content already in the tree and the incoming
content and returns the merged text, or raises when the two cannot be
reconciled.  Strategies are pure and deterministic: merging the same pair
twice yields the same bytes, and merging content with itself is a no-op.

Which strategy applies to which path is decided by an ordered list of
:class:`MergeRule` entries; the first matching pattern wins.
"""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from blueprint_forge.errors import HardConflictError, ScriptConflictError
from blueprint_forge.routing import glob_matches


@dataclass(frozen=True)
class MergeContext:
    """Identifies the collision a strategy is resolving."""

    path: str
    first_node: str
    second_node: str

    def conflict(self, detail: str) -> HardConflictError:
        return HardConflictError(self.path, self.first_node, self.second_node, detail)


MergeStrategy = Callable[[str, str, MergeContext], str]


@dataclass(frozen=True)
class MergeRule:
    """Apply *strategy* to tree paths matching the glob *pattern*."""

    pattern: str
    strategy: str


DEFAULT_MERGE_RULES: tuple[MergeRule, ...] = (
    MergeRule("**/package.json", "json-manifest"),
    MergeRule("**/.env", "env-template"),
    MergeRule("**/.env.*", "env-template"),
    MergeRule("**/.gitignore", "line-union"),
    MergeRule("**/.dockerignore", "line-union"),
    MergeRule("**/.prettierignore", "line-union"),
    MergeRule("**/.eslintignore", "line-union"),
    MergeRule("**/index.ts", "barrel-exports"),
    MergeRule("**/index.tsx", "barrel-exports"),
    MergeRule("**/types.ts", "declarations"),
    MergeRule("**/constants.ts", "declarations"),
    MergeRule("**/*.types.ts", "declarations"),
    MergeRule("**/*.constants.ts", "declarations"),
)


# ---------------------------------------------------------------------------
# json-manifest
# ---------------------------------------------------------------------------


def merge_json_manifest(existing: str, incoming: str, ctx: MergeContext) -> str:
    """Deep-merge two JSON manifests (``package.json``).

    Objects merge key by key, lists are unioned in first-seen order.  A
    differing value under ``scripts`` raises :class:`ScriptConflictError`;
    any other differing scalar raises :class:`HardConflictError`.
    """
    try:
        base = json.loads(existing)
        other = json.loads(incoming)
    except json.JSONDecodeError as exc:
        raise ctx.conflict(f"invalid JSON: {exc.msg}") from exc
    if not isinstance(base, dict) or not isinstance(other, dict):
        raise ctx.conflict("manifest is not a JSON object")

    _deep_merge(base, other, (), ctx)
    return json.dumps(base, indent=2, ensure_ascii=False) + "\n"


def _deep_merge(base: dict[str, Any], other: dict[str, Any], trail: tuple[str, ...], ctx: MergeContext) -> None:
    for key, value in other.items():
        if key not in base:
            base[key] = copy.deepcopy(value)
            continue
        current = base[key]
        if current == value:
            continue
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value, (*trail, key), ctx)
        elif isinstance(current, list) and isinstance(value, list):
            current.extend(copy.deepcopy(v) for v in value if v not in current)
        elif trail == ("scripts",):
            raise ScriptConflictError(key, current, value)
        else:
            raise ctx.conflict(f"{'.'.join((*trail, key))}: {current!r} != {value!r}")


# ---------------------------------------------------------------------------
# env-template
# ---------------------------------------------------------------------------

_ENV_LINE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=")


def _env_entries(text: str) -> list[tuple[str | None, list[str]]]:
    """Split an env file into ``(key, lines)`` chunks.

    Comment lines directly above an assignment travel with it.  Lines that
    belong to no assignment form chunks with key ``None``.
    """
    chunks: list[tuple[str | None, list[str]]] = []
    pending: list[str] = []
    for line in text.splitlines():
        match = _ENV_LINE.match(line)
        if match:
            chunks.append((match.group(1), [*pending, line]))
            pending = []
        elif not line.strip():
            if pending:
                chunks.append((None, pending))
                pending = []
        else:
            pending.append(line)
    if pending:
        chunks.append((None, pending))
    return chunks


def merge_env_template(existing: str, incoming: str, ctx: MergeContext) -> str:
    """Union of ``KEY=`` entries; for a key present in both, the existing entry wins."""
    chunks = _env_entries(existing)
    keys = {key for key, _ in chunks if key}
    seen_text = {"\n".join(lines) for key, lines in chunks if key is None}
    for key, lines in _env_entries(incoming):
        if key is None:
            if "\n".join(lines) in seen_text:
                continue
            seen_text.add("\n".join(lines))
        elif key in keys:
            continue
        else:
            keys.add(key)
        chunks.append((key, lines))
    return "\n".join("\n".join(lines) for _, lines in chunks) + "\n"


# ---------------------------------------------------------------------------
# line-union
# ---------------------------------------------------------------------------


def merge_line_union(existing: str, incoming: str, ctx: MergeContext) -> str:
    """Keep every existing line, then append unseen incoming lines."""
    lines = existing.rstrip("\n").splitlines()
    seen = {line.strip() for line in lines if line.strip()}
    for line in incoming.splitlines():
        stripped = line.strip()
        if stripped and stripped not in seen:
            seen.add(stripped)
            lines.append(line)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# barrel-exports
# ---------------------------------------------------------------------------


def _statements(text: str, keyword: str) -> list[str]:
    """Collect ``import``/``export`` statements, joining multi-line ones."""
    statements: list[str] = []
    buffer: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if buffer:
            buffer.append(stripped)
            if "from" in stripped or stripped.endswith(";"):
                statements.append("\n".join(buffer))
                buffer = []
        elif stripped.startswith(keyword + " "):
            if "{" in stripped and "}" not in stripped:
                buffer = [stripped]
            else:
                statements.append(stripped)
    if buffer:
        statements.append("\n".join(buffer))
    return statements


def _leading_comment(text: str) -> list[str]:
    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(("/*", "*", "//")):
            lines.append(line)
        elif stripped or not lines:
            break
        else:
            lines.append(line)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def _statement_key(statement: str) -> str:
    return re.sub(r"\s+", " ", statement).rstrip(";").strip()


_REEXPORT = re.compile(
    r"^export\s+(?:type\s+)?(?:\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})(?:\s+from\s+([\x27\x22])[^\x27\x22]+\1)?$"
)


def _is_barrel(text: str) -> bool:
    """True when *text* holds nothing but imports and re-export lists."""
    _, blocks = _split_declarations(text)
    for block in blocks:
        code = [
            line.strip()
            for line in block.lines
            if line.strip() and not line.strip().startswith(("//", "/*", "*"))
        ]
        if code and not _REEXPORT.match(_statement_key(" ".join(code))):
            return False
    return True


def merge_barrel_exports(existing: str, incoming: str, ctx: MergeContext) -> str:
    """Union of the import and export statements of two barrel files.

    Index files that also carry declarations or other code are merged block
    by block instead, like :func:`merge_declarations`, so nothing is dropped.
    """
    if not (_is_barrel(existing) and _is_barrel(incoming)):
        return _merge_blocks(existing, incoming, ctx)
    comment = _leading_comment(existing) or _leading_comment(incoming)
    imports = _union(_statements(existing, "import"), _statements(incoming, "import"))
    exports = _union(_statements(existing, "export"), _statements(incoming, "export"))

    parts: list[str] = []
    if comment:
        parts.append("\n".join(comment))
    if imports:
        parts.append("\n".join(imports))
    parts.append("\n".join(exports))
    return "\n\n".join(parts) + "\n"


def _union(first: Iterable[str], second: Iterable[str]) -> list[str]:
    merged: dict[str, str] = {}
    for statement in (*first, *second):
        merged.setdefault(_statement_key(statement), statement)
    return list(merged.values())


# ---------------------------------------------------------------------------
# declarations
# ---------------------------------------------------------------------------

_DECLARATION = re.compile(
    r"^export\s+(?:declare\s+)?(?:abstract\s+)?"
    r"(?:const|let|var|type|interface|enum|function|class)\s+([A-Za-z_$][\w$]*)"
)


@dataclass
class _Block:
    name: str | None
    lines: list[str]

    @property
    def text(self) -> str:
        lines = list(self.lines)
        while lines and not lines[0].strip():
            lines.pop(0)
        return "\n".join(lines).rstrip()

    @property
    def key(self) -> str:
        return "\n".join(line.rstrip() for line in self.text.splitlines())


def _depth_change(line: str) -> int:
    return sum(line.count(c) for c in "{([") - sum(line.count(c) for c in "})]")


def _split_declarations(text: str) -> tuple[list[str], list[_Block]]:
    """Split a TypeScript module into its imports and top-level blocks.

    A block starts at an unindented line outside any bracket and runs until
    the next one.  Comments directly above a declaration are kept with it.
    """
    imports = _statements(text, "import")
    import_lines = {line for statement in imports for line in statement.splitlines()}

    blocks: list[_Block] = []
    pending: list[str] = []
    current: _Block | None = None
    depth = 0
    for line in text.splitlines():
        stripped = line.strip()
        if depth <= 0 and stripped and stripped in import_lines:
            continue
        top_level = (
            depth <= 0
            and line[:1] not in ("", " ", "\t")
            and not stripped.startswith(("}", ")", "]"))
        )
        if top_level and stripped.startswith(("//", "/*")):
            current = None
            pending.append(line)
        elif top_level:
            match = _DECLARATION.match(line)
            current = _Block(match.group(1) if match else None, [*pending, line])
            blocks.append(current)
            pending = []
            depth = _depth_change(line)
        elif current is not None:
            current.lines.append(line)
            depth += _depth_change(line)
        elif pending or stripped:
            pending.append(line)
    if any(line.strip() for line in pending):
        blocks.append(_Block(None, pending))
    return imports, blocks


def merge_declarations(existing: str, incoming: str, ctx: MergeContext) -> str:
    """Union of exported top-level declarations.

    A declaration present in both files with the same text is kept once.
    The same name declared with different bodies is a hard conflict.
    """
    return _merge_blocks(existing, incoming, ctx)


def _merge_blocks(existing: str, incoming: str, ctx: MergeContext) -> str:
    base_imports, base_blocks = _split_declarations(existing)
    new_imports, new_blocks = _split_declarations(incoming)

    named = {block.name: block for block in base_blocks if block.name}
    anonymous = {block.key for block in base_blocks if not block.name}
    merged = list(base_blocks)
    for block in new_blocks:
        if block.name:
            known = named.get(block.name)
            if known is None:
                named[block.name] = block
                merged.append(block)
            elif known.key != block.key:
                raise ctx.conflict(f"declaration {block.name!r} differs")
        elif block.key not in anonymous:
            anonymous.add(block.key)
            merged.append(block)

    parts: list[str] = []
    imports = _union(base_imports, new_imports)
    if imports:
        parts.append("\n".join(imports))
    parts.extend(block.text for block in merged)
    return "\n\n".join(parts) + "\n"


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

STRATEGIES: dict[str, MergeStrategy] = {
    "json-manifest": merge_json_manifest,
    "env-template": merge_env_template,
    "line-union": merge_line_union,
    "barrel-exports": merge_barrel_exports,
    "declarations": merge_declarations,
}


def build_merge_rules(extra: Iterable[dict[str, str]] = ()) -> tuple[MergeRule, ...]:
    """Return *extra* rules (checked first) followed by the defaults.

    Raises:
        ValueError: An extra rule names an unknown strategy.
    """
    rules = []
    for item in extra:
        rule = MergeRule(pattern=item["pattern"], strategy=item["strategy"])
        if rule.strategy not in STRATEGIES:
            raise ValueError(f"Unknown merge strategy {rule.strategy!r} for {rule.pattern!r}")
        rules.append(rule)
    return (*rules, *DEFAULT_MERGE_RULES)


def strategy_for(path: str, rules: Iterable[MergeRule]) -> MergeStrategy | None:
    """Return the strategy of the first rule matching tree path *path*."""
    relative = path.lstrip("/")
    for rule in rules:
        if glob_matches(rule.pattern, relative):
            return STRATEGIES[rule.strategy]
    return None
