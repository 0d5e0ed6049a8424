"""Utility functions for manifest-audit."""

from manifest_audit.utils.logging import configure_logging, get_logger, get_logger_with_context
from manifest_audit.utils.errors import (
    ManifestAuditError,
    ConfigurationError,
    RuleCompilationError,
    RuleEvaluationError,
    PatchGenerationError,
    FileReadError,
    safe_get,
)
from manifest_audit.utils.expression import CompiledExpression, SafeExpressionEvaluator
from manifest_audit.utils.config import (
    ManifestAuditConfig,
    SeveritySettings,
    AnalysisSettings,
    OutputConfig,
    load_config,
    save_config,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "get_logger_with_context",
    # Errors
    "ManifestAuditError",
    "ConfigurationError",
    "RuleCompilationError",
    "RuleEvaluationError",
    "PatchGenerationError",
    "FileReadError",
    "safe_get",
    # Expression
    "CompiledExpression",
    "SafeExpressionEvaluator",
    # Config
    "ManifestAuditConfig",
    "SeveritySettings",
    "AnalysisSettings",
    "OutputConfig",
    "load_config",
    "save_config",
]
