"""manifest-audit: Kubernetes change detection and severity classification.

This package turns the YAML part of a git commit into structured,
severity-ranked records of every Kubernetes resource change it contains:

- **Document splitting**: Multi-document YAML with source line tracking
- **Correlation**: Before/after resources matched by kind, name and namespace
- **Patches**: RFC 6902 diffs of modified resources, with previous values
- **Extractors**: Scaling, image/version and environment variable changes
- **Severity rules**: Ordered CEL rules, first match wins, with a fixed fallback

Usage:
    from manifest_audit import Commit, CommitChange, Engine, KubernetesChangeAnalyzer

    analyzer = KubernetesChangeAnalyzer(reader, engine=Engine())
    change = analyzer.analyze(commit, CommitChange(file="k8s/deploy.yaml"))
    for kc in change.kubernetes_changes:
        print(kc.severity, kc.kind, kc.name, kc.fields_changed)

CLI:
    manifest-audit analyze --before old.yaml --after new.yaml --path k8s/app.yaml
    manifest-audit rules check severity.yaml
    manifest-audit rules test 'kubernetes.kind == "Secret"' --context '{...}'
"""

__version__ = "0.1.0"

# Core
from manifest_audit.core.analyzer import (
    AnalyzerContext,
    FileReader,
    KubernetesChangeAnalyzer,
    analyze_kubernetes_changes,
)
from manifest_audit.core.patch import JSONPatches, generate_json_patches

# Rules
from manifest_audit.rules.config import (
    build_engine,
    default_severity_config,
    load_severity_config,
)
from manifest_audit.rules.context import build_context
from manifest_audit.rules.engine import Engine

# Models (commonly used)
from manifest_audit.models.commit import Commit, CommitChange, FileChangeType, LineRanges
from manifest_audit.models.kubernetes import ChangeType, KubernetesChange, KubernetesRef
from manifest_audit.models.rules import SeverityConfig, SeverityRule
from manifest_audit.models.severity import Severity

__all__ = [
    # Version
    "__version__",
    # Core
    "AnalyzerContext",
    "FileReader",
    "KubernetesChangeAnalyzer",
    "analyze_kubernetes_changes",
    "JSONPatches",
    "generate_json_patches",
    # Rules
    "build_engine",
    "default_severity_config",
    "load_severity_config",
    "build_context",
    "Engine",
    # Models
    "Commit",
    "CommitChange",
    "FileChangeType",
    "LineRanges",
    "ChangeType",
    "KubernetesChange",
    "KubernetesRef",
    "SeverityConfig",
    "SeverityRule",
    "Severity",
]
