"""Configuration loading and management for transcript-filer.

Settings are plain pydantic models; loaders read them from JSON or YAML
files. The correction and routing components never read files
themselves; they are handed already-built settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from transcript_filer.errors import ResourceError, configuration_error_from
from transcript_filer.models.mapping import DEFAULT_TIER2_CONFIDENCE, DEFAULT_TIER3_CONFIDENCE
from transcript_filer.models.routing import RoutingConfig

CONTEXT_ENV_VAR = "TRANSCRIPT_FILER_CONTEXT"
DEFAULT_CONTEXT_DIR = Path("~/.transcript-filer/context")


class DatabaseSettings(BaseModel):
    """Settings for the sounds-like mapping database."""

    # Knowledge store directories; None uses default_context_path()
    context_paths: list[str] | None = None
    # Registries that push a variant into tier 2 / tier 3; None uses the built-in lists
    common_terms: list[Any] | None = None
    generic_terms: list[Any] | None = None
    tier2_confidence: float = Field(default=DEFAULT_TIER2_CONFIDENCE, ge=0.0, le=1.0)
    tier3_confidence: float = Field(default=DEFAULT_TIER3_CONFIDENCE, ge=0.0, le=1.0)
    # Escape hatch: report no collisions and never promote on collision
    detect_collisions: bool = True

    def resolved_context_paths(self) -> list[Path]:
        if self.context_paths is not None:
            return [Path(p).expanduser() for p in self.context_paths]
        return [default_context_path()]


class CorrectionSettings(BaseModel):
    """Settings for the correction pass."""

    # Entity names keep their declared casing ("observasion" -> "Observasjon")
    preserve_case: bool = False
    use_word_boundaries: bool = True
    apply_tier3: bool = False
    use_capitalization_hints: bool = True


class FilerSettings(BaseModel):
    """Top-level settings file."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    correction: CorrectionSettings = Field(default_factory=CorrectionSettings)
    routing_config_path: str | None = None


def default_context_path() -> Path:
    """Knowledge store directory from the environment, else the user default."""
    override = os.environ.get(CONTEXT_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONTEXT_DIR.expanduser()


def _read_structured_file(path: Path) -> Any:
    if not path.exists():
        raise ResourceError(f"Config file not found: {path}", context={"path": str(path)})

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                return yaml.safe_load(f) or {}
            return json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise configuration_error_from(e, f"config file {path.name}") from e
    except OSError as e:
        raise ResourceError(
            f"Could not read config file: {path}", context={"error": str(e)}
        ) from e


def load_settings(path: Path | str) -> FilerSettings:
    """Load top-level settings from a JSON or YAML file.

    Raises:
        ResourceError: If the file is missing or unreadable
        ConfigurationError: If the file does not describe valid settings
    """
    path = Path(path)
    data = _read_structured_file(path)
    try:
        return FilerSettings.model_validate(data)
    except PydanticValidationError as e:
        raise configuration_error_from(e, "settings") from e


def load_routing_config(path: Path | str) -> RoutingConfig:
    """Load routing configuration from a JSON or YAML file.

    Raises:
        ResourceError: If the file is missing or unreadable
        ConfigurationError: If the file is not a valid routing config
    """
    path = Path(path)
    data = _read_structured_file(path)
    try:
        return RoutingConfig.model_validate(data)
    except PydanticValidationError as e:
        raise configuration_error_from(e, "routing config") from e


def save_routing_config(config: RoutingConfig, path: Path | str) -> Path:
    """Save routing configuration as JSON with an atomic write.

    Args:
        config: Configuration snapshot (e.g. from RoutingEngine.get_config())
        path: Destination file

    Returns:
        Path to the saved file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")

    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)

    temp_path.replace(path)
    return path
