"""Severity rule configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from manifest_audit.models.severity import Severity


class SeverityRule(BaseModel):
    """A CEL expression and the severity it assigns when true."""

    model_config = {"frozen": True}

    expression: str = Field(description="CEL boolean expression")
    severity: Severity = Field(description="Severity returned when the expression matches")


class SeverityConfig(BaseModel):
    """Ordered severity rules plus the default used when none match.

    Rules are evaluated in list order and the first match wins.
    """

    model_config = {"frozen": True}

    default: Severity = Field(default=Severity.MEDIUM, description="Fallback severity")
    rules: list[SeverityRule] = Field(default_factory=list, description="Rules in priority order")

    @classmethod
    def from_yaml(cls, text: str) -> SeverityConfig:
        """Parse a config from YAML text (``default`` and ``rules`` keys)."""
        from manifest_audit.rules.config import parse_severity_config

        return parse_severity_config(text)

    def to_yaml(self) -> str:
        """Serialize to YAML, rules as an ordered mapping."""
        from manifest_audit.rules.config import severity_config_to_yaml

        return severity_config_to_yaml(self)

    def get_rule(self, expression: str) -> SeverityRule | None:
        """Get a rule by its expression."""
        for rule in self.rules:
            if rule.expression == expression:
                return rule
        return None

    def merge(self, overrides: SeverityConfig | None, override_default: bool = True) -> SeverityConfig:
        """Combine two configs, with overrides taking precedence.

        An override for an existing expression replaces its severity in
        place; new expressions are appended after the base rules. The
        default is taken from overrides only when they set one explicitly.
        """
        if overrides is None:
            return self

        merged = {rule.expression: rule.severity for rule in self.rules}
        for rule in overrides.rules:
            merged[rule.expression] = rule.severity

        default = self.default
        if override_default and "default" in overrides.model_fields_set:
            default = overrides.default
        return SeverityConfig(
            default=default,
            rules=[SeverityRule(expression=e, severity=s) for e, s in merged.items()],
        )
