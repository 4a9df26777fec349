"""Per-node generator output.

A generator fills one :class:`CodegenOutput` through its ``add_*`` methods.
The accumulator is append-only: entries are exposed to the orchestrator as
tuples and cannot be edited once recorded.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Union

FileContent = Union[str, bytes]


@dataclass(frozen=True)
class GeneratedFile:
    """One file emitted by a generator, before routing."""

    path: str
    content: FileContent
    category: str | None = None


@dataclass(frozen=True)
class EnvVar:
    """An environment variable the generated project expects."""

    name: str
    description: str
    required: bool = True
    secret: bool = False
    default: str | None = None


@dataclass(frozen=True)
class Script:
    """A run script destined for the root ``package.json``."""

    name: str
    command: str
    description: str | None = None


@dataclass(frozen=True)
class DocEntry:
    path: str
    title: str
    content: str


@dataclass(frozen=True)
class Interface:
    """A generated interface definition (ABI, OpenAPI document, TS types...)."""

    name: str
    kind: str
    content: str


class CodegenOutput:
    """Write-only accumulator for everything one node produces."""

    def __init__(self) -> None:
        self._files: list[GeneratedFile] = []
        self._env_vars: list[EnvVar] = []
        self._scripts: list[Script] = []
        self._docs: list[DocEntry] = []
        self._interfaces: list[Interface] = []
        self._published: dict[str, dict[str, Any]] = {}

    # -- Writers -----------------------------------------------------------

    def add_file(self, path: str, content: FileContent, category: str | None = None) -> None:
        if not isinstance(content, (str, bytes)):
            raise TypeError(f"File content for {path!r} must be str or bytes")
        self._files.append(GeneratedFile(path=path, content=content, category=category))

    def add_env_var(
        self,
        name: str,
        description: str,
        *,
        required: bool = True,
        secret: bool = False,
        default: str | None = None,
    ) -> None:
        self._env_vars.append(
            EnvVar(name=name, description=description, required=required, secret=secret, default=default)
        )

    def add_script(self, name: str, command: str, description: str | None = None) -> None:
        self._scripts.append(Script(name=name, command=command, description=description))

    def add_doc(self, path: str, title: str, content: str) -> None:
        self._docs.append(DocEntry(path=path, title=title, content=content))

    def add_interface(self, name: str, kind: str, content: str) -> None:
        self._interfaces.append(Interface(name=name, kind=kind, content=content))

    def publish(self, port_id: str, **fields: Any) -> None:
        """Publish data on an output port for downstream wired nodes.

        Repeated calls for the same port update its field set.  Values are
        deep-copied so later mutation by the generator cannot leak.
        """
        self._published.setdefault(port_id, {}).update(copy.deepcopy(fields))

    # -- Readers -----------------------------------------------------------

    @property
    def files(self) -> tuple[GeneratedFile, ...]:
        return tuple(self._files)

    @property
    def env_vars(self) -> tuple[EnvVar, ...]:
        return tuple(self._env_vars)

    @property
    def scripts(self) -> tuple[Script, ...]:
        return tuple(self._scripts)

    @property
    def docs(self) -> tuple[DocEntry, ...]:
        return tuple(self._docs)

    @property
    def interfaces(self) -> tuple[Interface, ...]:
        return tuple(self._interfaces)

    @property
    def published(self) -> Mapping[str, Mapping[str, Any]]:
        return MappingProxyType(
            {port: MappingProxyType(fields) for port, fields in self._published.items()}
        )

    def is_empty(self) -> bool:
        return not (self._files or self._env_vars or self._scripts or self._docs or self._interfaces)

    def __repr__(self) -> str:
        return (
            f"CodegenOutput(files={len(self._files)}, env_vars={len(self._env_vars)}, "
            f"scripts={len(self._scripts)}, docs={len(self._docs)})"
        )
