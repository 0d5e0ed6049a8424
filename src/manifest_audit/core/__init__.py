"""Core change detection for manifest-audit."""

from manifest_audit.core.analyzer import (
    AnalyzerContext,
    FileReader,
    KubernetesChangeAnalyzer,
    analyze_kubernetes_changes,
)
from manifest_audit.core.changed_lines import extract_changed_lines
from manifest_audit.core.correlate import DocumentPair, correlate_documents, find_affected_documents
from manifest_audit.core.documents import (
    ParsedDocuments,
    extract_kubernetes_ref,
    is_yaml,
    parse_yaml_documents,
)
from manifest_audit.core.extractors import (
    DEFAULT_VERSION_PATTERNS,
    extract_all_version_changes,
    extract_environment_changes,
    extract_scaling_changes,
    matches_pattern,
)
from manifest_audit.core.patch import JSONPatches, generate_json_patches, get_value_from_path
from manifest_audit.core.severity import determine_change_severity
from manifest_audit.core.source_type import determine_source_type
from manifest_audit.core.version import (
    ImageReference,
    analyze_version_change,
    detect_version_change,
    is_git_sha,
    is_semver,
    is_sha256,
    parse_image_reference,
)

__all__ = [
    "AnalyzerContext",
    "FileReader",
    "KubernetesChangeAnalyzer",
    "analyze_kubernetes_changes",
    "extract_changed_lines",
    "DocumentPair",
    "correlate_documents",
    "find_affected_documents",
    "ParsedDocuments",
    "extract_kubernetes_ref",
    "is_yaml",
    "parse_yaml_documents",
    "DEFAULT_VERSION_PATTERNS",
    "extract_all_version_changes",
    "extract_environment_changes",
    "extract_scaling_changes",
    "matches_pattern",
    "JSONPatches",
    "generate_json_patches",
    "get_value_from_path",
    "determine_change_severity",
    "determine_source_type",
    "ImageReference",
    "analyze_version_change",
    "detect_version_change",
    "is_git_sha",
    "is_semver",
    "is_sha256",
    "parse_image_reference",
]
