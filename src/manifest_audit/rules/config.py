"""Loading, serializing and building severity rule configuration."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from manifest_audit.models.rules import SeverityConfig, SeverityRule
from manifest_audit.models.severity import Severity
from manifest_audit.utils.errors import ConfigurationError
from manifest_audit.utils.logging import get_logger

if TYPE_CHECKING:
    from manifest_audit.rules.engine import Engine
    from manifest_audit.utils.config import ManifestAuditConfig

logger = get_logger(__name__)

# Built-in rules in priority order. Earlier rules win.
DEFAULT_RULES: list[tuple[str, Severity]] = [
    # Deletions and secrets
    ('change.type == "deleted"', Severity.CRITICAL),
    ('kubernetes.kind == "Secret"', Severity.CRITICAL),
    # RBAC
    ('kubernetes.kind == "ServiceAccount"', Severity.HIGH),
    ('kubernetes.kind == "Role"', Severity.HIGH),
    ('kubernetes.kind == "ClusterRole"', Severity.HIGH),
    ('kubernetes.kind == "RoleBinding"', Severity.HIGH),
    ('kubernetes.kind == "ClusterRoleBinding"', Severity.HIGH),
    # Networking
    ('kubernetes.kind == "Service"', Severity.HIGH),
    ('kubernetes.kind == "Ingress"', Severity.HIGH),
    ('kubernetes.kind == "NetworkPolicy"', Severity.HIGH),
    # Storage
    ('kubernetes.kind == "PersistentVolume"', Severity.MEDIUM),
    ('kubernetes.kind == "PersistentVolumeClaim"', Severity.MEDIUM),
    # Versions
    ('kubernetes.version_downgrade != ""', Severity.HIGH),
    ('kubernetes.version_upgrade == "major"', Severity.HIGH),
    ("kubernetes.has_sha_change", Severity.HIGH),
    # Commit size
    ("commit.line_changes > 500", Severity.CRITICAL),
    ("commit.line_changes > 100", Severity.HIGH),
    ("commit.file_count > 20", Severity.CRITICAL),
    ("commit.file_count > 10", Severity.HIGH),
    ("commit.resource_count > 25", Severity.CRITICAL),
    ("commit.resource_count > 15", Severity.HIGH),
    # Resource shape
    ("change.field_count > 20", Severity.HIGH),
    ("kubernetes.replica_delta > 10", Severity.HIGH),
    ("kubernetes.replica_delta < -5", Severity.HIGH),
    ("kubernetes.has_env_change", Severity.MEDIUM),
    ("kubernetes.has_resource_change", Severity.MEDIUM),
    # Files
    ('file.extension == ".env"', Severity.HIGH),
    ('file.is_config && change.type == "modified"', Severity.MEDIUM),
]


def default_severity_config() -> SeverityConfig:
    """Build a fresh copy of the built-in severity configuration."""
    return SeverityConfig(
        default=Severity.MEDIUM,
        rules=[SeverityRule(expression=expr, severity=sev) for expr, sev in DEFAULT_RULES],
    )


def parse_severity_config(text: str) -> SeverityConfig:
    """Parse severity rules from YAML text.

    Accepts ``rules`` either as a mapping of expression to severity, in
    file order, or as a list of ``{expression, severity}`` entries.
    A missing or invalid ``default`` falls back to medium and does not
    replace the base default when the config is merged.

    Raises:
        ConfigurationError: On invalid YAML or an invalid rule severity
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in severity config: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Severity config must be a mapping")

    fields: dict[str, Any] = {"rules": _parse_rules(data.get("rules"))}
    raw_default = data.get("default")
    if raw_default is not None:
        try:
            fields["default"] = Severity.parse(str(raw_default))
        except ValueError:
            logger.warning("Invalid default severity %r, using medium", raw_default)

    # An absent default stays out of model_fields_set, so merge() keeps the base one
    return SeverityConfig(**fields)


def _parse_rules(raw: Any) -> list[SeverityRule]:
    if raw is None:
        return []

    if isinstance(raw, dict):
        entries = list(raw.items())
    elif isinstance(raw, list):
        entries = []
        for item in raw:
            if not isinstance(item, dict) or "expression" not in item:
                raise ConfigurationError(
                    f"Invalid rule entry {item!r}, expected 'expression' and 'severity'",
                    config_key="rules",
                )
            entries.append((item["expression"], item.get("severity")))
    else:
        raise ConfigurationError("'rules' must be a mapping or a list", config_key="rules")

    rules = []
    for expression, severity in entries:
        try:
            parsed = Severity.parse(str(severity))
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid severity for rule '{expression}': {e}", config_key="rules"
            ) from e
        rules.append(SeverityRule(expression=str(expression), severity=parsed))
    return rules


def severity_config_to_yaml(config: SeverityConfig) -> str:
    """Serialize a config in the mapping form, preserving rule order."""
    data = {
        "default": config.default.value,
        "rules": {rule.expression: rule.severity.value for rule in config.rules},
    }
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def load_severity_config(path: Path | str) -> SeverityConfig:
    """Load severity rules from a YAML file.

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read severity config {path}: {e}") from e
    config = parse_severity_config(text)
    logger.debug("Loaded %d severity rules from %s", len(config.rules), path)
    return config


def resolve_severity_config(app_config: ManifestAuditConfig) -> SeverityConfig:
    """Combine built-in rules, the configured rules file and default override."""
    settings = app_config.severity
    config = default_severity_config() if settings.use_defaults else SeverityConfig()

    if settings.rules_file:
        config = config.merge(load_severity_config(settings.rules_file))

    if settings.default is not None:
        config = SeverityConfig(default=settings.default, rules=config.rules)
    return config


def build_engine(app_config: ManifestAuditConfig) -> Engine | None:
    """Build a rule engine from application config.

    Returns None when the rule engine is disabled, in which case callers use
    the fixed fallback classification.
    """
    from manifest_audit.rules.engine import Engine

    if not app_config.analysis.use_rule_engine:
        return None
    return Engine(resolve_severity_config(app_config))
