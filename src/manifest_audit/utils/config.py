"""Configuration file support for manifest-audit."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from manifest_audit.models.severity import Severity
from manifest_audit.utils.errors import ConfigurationError


class SeveritySettings(BaseModel):
    """Where severity rules come from."""

    rules_file: str | None = Field(default=None, description="YAML file with severity rules")
    use_defaults: bool = Field(
        default=True, description="Start from the built-in rules before merging rules_file"
    )
    default: Severity | None = Field(default=None, description="Override the default severity")


class AnalysisSettings(BaseModel):
    """Analyzer behaviour."""

    use_rule_engine: bool = Field(
        default=True, description="Use CEL rules; when false use the fixed fallback"
    )
    version_patterns: list[str] = Field(
        default_factory=list, description="Glob patterns of version-like fields"
    )


class OutputConfig(BaseModel):
    """Output configuration."""

    format: str = Field(default="terminal", description="Default output format")
    color: bool = Field(default=True, description="Enable color output")
    verbose: bool = Field(default=False, description="Verbose output")


class ManifestAuditConfig(BaseModel):
    """Main configuration for manifest-audit."""

    severity: SeveritySettings = Field(default_factory=SeveritySettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    output: OutputConfig = Field(default_factory=OutputConfig)


def get_config_paths() -> list[Path]:
    """Get possible configuration file paths, most specific first."""
    cwd = Path.cwd()
    home = Path.home()
    paths = [
        cwd / ".manifest-audit.yaml",
        cwd / ".manifest-audit.yml",
        home / ".manifest-audit.yaml",
        home / ".config" / "manifest-audit" / "config.yaml",
    ]

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        paths.append(Path(xdg_config) / "manifest-audit" / "config.yaml")

    return paths


def load_config(config_path: Path | str | None = None) -> ManifestAuditConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file. If None, searches default locations.

    Returns:
        Loaded configuration, or the defaults when no file exists

    Raises:
        ConfigurationError: If an explicit path is missing or a file is invalid
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        return _load_config_file(path)

    for path in get_config_paths():
        if path.exists():
            return _load_config_file(path)

    return ManifestAuditConfig()


def _load_config_file(path: Path) -> ManifestAuditConfig:
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return ManifestAuditConfig()
    try:
        return ManifestAuditConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e


def save_config(config: ManifestAuditConfig, config_path: Path | str) -> Path:
    """Save configuration to file, omitting default values."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_defaults=True)
    path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
    return path
