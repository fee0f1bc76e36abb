"""Configuration management for featurelink projects."""

from __future__ import annotations

import json
from pathlib import Path

from featurelink.models import DEFAULT_STEP_KEYWORDS, FeatureLinkError, LinkerConfig

FEATURELINK_DIR = ".featurelink"
CONFIG_FILE = "config.json"


class ConfigError(FeatureLinkError):
    """Raised when the project config cannot be read."""


def _config_path(project_root: Path) -> Path:
    return project_root / FEATURELINK_DIR / CONFIG_FILE


def save_config(config: LinkerConfig, project_root: Path) -> Path:
    """Save project config to .featurelink/config.json. Returns the config path."""
    featurelink_dir = project_root / FEATURELINK_DIR
    featurelink_dir.mkdir(parents=True, exist_ok=True)
    path = _config_path(project_root)
    data = {
        "version": config.version,
        "features_dir": config.features_dir,
        "definitions_file": config.definitions_file,
        "exclude_tags": config.exclude_tags,
        "step_keywords": config.step_keywords,
    }
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def load_config(project_root: Path) -> LinkerConfig:
    """Load project config from .featurelink/config.json."""
    path = _config_path(project_root)
    if not path.exists():
        raise FileNotFoundError(f"No config found at {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config format in {path}: expected object")
    return LinkerConfig(
        version=data.get("version", "0.1.0"),
        features_dir=data.get("features_dir", "features"),
        definitions_file=data.get("definitions_file", "step_definitions.yaml"),
        exclude_tags=list(data.get("exclude_tags", [])),
        step_keywords=list(data.get("step_keywords", DEFAULT_STEP_KEYWORDS)),
    )


def is_initialized(project_root: Path) -> bool:
    """Check if the project is initialized for featurelink."""
    return _config_path(project_root).exists()


def load_config_or_default(project_root: Path) -> LinkerConfig:
    """Project config if present, otherwise defaults (no exclusions)."""
    if is_initialized(project_root):
        return load_config(project_root)
    return LinkerConfig()
