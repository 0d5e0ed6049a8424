"""CEL severity rules: configuration, evaluation context and engine."""

from manifest_audit.rules.cel import CelError, cel_to_py, compile_cel, eval_cel
from manifest_audit.rules.config import (
    DEFAULT_RULES,
    build_engine,
    default_severity_config,
    load_severity_config,
    parse_severity_config,
    resolve_severity_config,
)
from manifest_audit.rules.context import DECLARED_VARIABLES, build_context
from manifest_audit.rules.engine import Engine

__all__ = [
    "CelError",
    "cel_to_py",
    "compile_cel",
    "eval_cel",
    "DEFAULT_RULES",
    "build_engine",
    "default_severity_config",
    "load_severity_config",
    "parse_severity_config",
    "resolve_severity_config",
    "DECLARED_VARIABLES",
    "build_context",
    "Engine",
]
