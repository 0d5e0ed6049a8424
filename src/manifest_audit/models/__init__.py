"""Data models for manifest-audit.

Models are Pydantic BaseModel with frozen=True, except CommitChange and
Commit which the analyzer fills in.
"""

from manifest_audit.models.common import AuditError
from manifest_audit.models.severity import Severity, SeverityDistribution, max_severity
from manifest_audit.models.kubernetes import (
    SHA_VALUE_TYPES,
    ChangeType,
    EnvironmentChange,
    ExtendedPatch,
    KubernetesChange,
    KubernetesRef,
    PatchOperation,
    Scaling,
    SourceType,
    ValueType,
    VersionChange,
    VersionChangeType,
    YAMLDocument,
)
from manifest_audit.models.commit import (
    Commit,
    CommitChange,
    FileChangeType,
    LineRange,
    LineRanges,
)
from manifest_audit.models.rules import SeverityConfig, SeverityRule

__all__ = [
    # Common
    "AuditError",
    # Severity
    "Severity",
    "SeverityDistribution",
    "max_severity",
    # Kubernetes
    "SHA_VALUE_TYPES",
    "ChangeType",
    "EnvironmentChange",
    "ExtendedPatch",
    "KubernetesChange",
    "KubernetesRef",
    "PatchOperation",
    "Scaling",
    "SourceType",
    "ValueType",
    "VersionChange",
    "VersionChangeType",
    "YAMLDocument",
    # Commit
    "Commit",
    "CommitChange",
    "FileChangeType",
    "LineRange",
    "LineRanges",
    # Rules
    "SeverityConfig",
    "SeverityRule",
]
