"""Blueprint Forge configuration.

Centralised, typed configuration for an orchestrator run. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RunSettings(BaseModel):
    """Tuning knobs for the generation phase."""

    max_parallel: int = Field(
        default=4, ge=1, description="Maximum generator invocations running at once"
    )
    node_timeout: float = Field(
        default=30.0, gt=0, description="Per-node generation timeout in seconds"
    )


class MaterializeSettings(BaseModel):
    """Where and how the merged tree is written."""

    output_dir: Path = Field(default=Path("./output"))
    archive: bool = Field(default=False, description="Write a .zip archive instead of a directory")
    overwrite: bool = Field(
        default=False, description="Replace an existing non-empty output target"
    )


class MergeSettings(BaseModel):
    """Extra mergeable targets, checked before the built-in merge rules.

    Each entry maps a glob pattern (matched against the absolute tree path)
    to a merge strategy name, e.g. ``{"pattern": "**/tsconfig.json",
    "strategy": "json-manifest"}``.
    """

    extra_rules: list[dict[str, str]] = Field(default_factory=list)


class Config(BaseModel):
    """Global Blueprint Forge configuration.

    Instances are typically created once by the CLI entry point (or a test)
    and handed to :class:`~blueprint_forge.orchestrator.Orchestrator`.
    """

    run: RunSettings = Field(default_factory=RunSettings)
    materialize: MaterializeSettings = Field(default_factory=MaterializeSettings)
    merge: MergeSettings = Field(default_factory=MergeSettings)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}; expected one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def output_dir(self) -> Path:
        return self.materialize.output_dir

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            FORGE_OUTPUT_DIR, FORGE_ARCHIVE, FORGE_OVERWRITE,
            FORGE_MAX_PARALLEL, FORGE_NODE_TIMEOUT, FORGE_LOG_LEVEL.
        """
        run_kwargs: dict[str, Any] = {}
        if os.environ.get("FORGE_MAX_PARALLEL"):
            run_kwargs["max_parallel"] = int(os.environ["FORGE_MAX_PARALLEL"])
        if os.environ.get("FORGE_NODE_TIMEOUT"):
            run_kwargs["node_timeout"] = float(os.environ["FORGE_NODE_TIMEOUT"])

        materialize_kwargs: dict[str, Any] = {}
        if os.environ.get("FORGE_OUTPUT_DIR"):
            materialize_kwargs["output_dir"] = Path(os.environ["FORGE_OUTPUT_DIR"])
        if os.environ.get("FORGE_ARCHIVE"):
            materialize_kwargs["archive"] = _env_flag(os.environ["FORGE_ARCHIVE"])
        if os.environ.get("FORGE_OVERWRITE"):
            materialize_kwargs["overwrite"] = _env_flag(os.environ["FORGE_OVERWRITE"])

        return cls(
            run=RunSettings(**run_kwargs),
            materialize=MaterializeSettings(**materialize_kwargs),
            log_level=os.environ.get("FORGE_LOG_LEVEL", "INFO").upper(),
        )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
