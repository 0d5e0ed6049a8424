"""Error types for manifest-audit."""

from __future__ import annotations

from typing import Any

from manifest_audit.models.common import AuditError


class ManifestAuditError(Exception):
    """Base exception for manifest-audit."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_audit_error(self) -> AuditError:
        """Convert to AuditError model."""
        return AuditError(code=self.code, message=self.message, details=self.details)


class ConfigurationError(ManifestAuditError):
    """Configuration error."""

    def __init__(self, message: str, config_key: str | None = None):
        details = {"config_key": config_key} if config_key else {}
        super().__init__(message, code="CONFIG_ERROR", details=details)


class RuleCompilationError(ConfigurationError):
    """A severity rule could not be compiled."""

    def __init__(self, expression: str, reason: str):
        super().__init__(f"failed to compile rule '{expression}': {reason}")
        self.code = "RULE_COMPILE_ERROR"
        self.expression = expression
        self.details = {"expression": expression, "reason": reason}


class RuleEvaluationError(ManifestAuditError):
    """A compiled rule failed at evaluation time."""

    def __init__(self, expression: str, reason: str):
        super().__init__(
            f"evaluation error in '{expression}': {reason}",
            code="RULE_EVAL_ERROR",
            details={"expression": expression, "reason": reason},
        )
        self.expression = expression


class PatchGenerationError(ManifestAuditError):
    """Two resource bodies could not be diffed."""

    def __init__(self, message: str):
        super().__init__(message, code="PATCH_ERROR")


class FileReadError(ManifestAuditError):
    """A file could not be read at a given commit."""

    def __init__(self, path: str, ref: str, reason: str = ""):
        message = f"Failed to read {path} at {ref}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code="FILE_READ_ERROR", details={"path": path, "ref": ref})
        self.path = path
        self.ref = ref


def safe_get(data: dict[str, Any] | None, *keys: str, default: Any = None) -> Any:
    """Safely get a nested value from a dictionary.

    Args:
        data: Dictionary to get value from
        *keys: Keys to traverse
        default: Default value if key not found

    Returns:
        Value at the nested key path, or default
    """
    current: Any = data
    for key in keys:
        if isinstance(current, dict):
            current = current.get(key)
            if current is None:
                return default
        else:
            return default
    return current
