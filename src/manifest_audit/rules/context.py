"""Evaluation context for severity rules.

A rule sees four maps: ``commit``, ``change``, ``kubernetes`` and ``file``.
Every key is always present and never None, so rules can compare against
empty strings and zeros without guarding with ``has()``.
"""

from __future__ import annotations

import os
from typing import Any

from manifest_audit.models.commit import Commit, CommitChange
from manifest_audit.models.kubernetes import (
    SHA_VALUE_TYPES,
    KubernetesChange,
    Scaling,
    VersionChangeType,
)

DECLARED_VARIABLES = ("commit", "change", "kubernetes", "file")

_CONFIG_EXTENSIONS = frozenset({".yaml", ".yml", ".json", ".toml", ".env"})

_TECH_BY_EXTENSION = {
    ".go": "go",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".md": "markdown",
    ".sh": "bash",
    ".bash": "bash",
    ".sql": "sql",
}

# Most significant bump first
_UPGRADE_ORDER = (VersionChangeType.MAJOR, VersionChangeType.MINOR, VersionChangeType.PATCH)


def build_context(
    commit: Commit | None,
    change: CommitChange | None,
    k8s_change: KubernetesChange | None,
) -> dict[str, dict[str, Any]]:
    """Build the rule evaluation context. Absent inputs yield empty defaults."""
    return {
        "commit": _commit_context(commit),
        "change": _change_context(change),
        "kubernetes": _kubernetes_context(k8s_change),
        "file": _file_context(change.file if change else ""),
    }


def _commit_context(commit: Commit | None) -> dict[str, Any]:
    if commit is None:
        return {
            "hash": "",
            "author": "",
            "author_email": "",
            "subject": "",
            "body": "",
            "type": "",
            "scope": "",
            "file_count": 0,
            "line_changes": 0,
            "resource_count": 0,
        }
    return {
        "hash": commit.hash,
        "author": commit.author,
        "author_email": commit.author_email,
        "subject": commit.subject,
        "body": commit.body,
        "type": commit.commit_type,
        "scope": commit.scope,
        "file_count": len(commit.changes),
        "line_changes": commit.total_line_changes,
        "resource_count": commit.total_resource_count,
    }


def _change_context(change: CommitChange | None) -> dict[str, Any]:
    if change is None:
        return {"type": "", "file": "", "adds": 0, "dels": 0, "fields_changed": [], "field_count": 0}

    fields: set[str] = set()
    count = 0
    for kc in change.kubernetes_changes:
        fields.update(kc.fields_changed)
        count += kc.field_change_count

    return {
        "type": change.type.value,
        "file": change.file,
        "adds": change.adds,
        "dels": change.dels,
        "fields_changed": sorted(fields),
        "field_count": count,
    }


def _kubernetes_context(kc: KubernetesChange | None) -> dict[str, Any]:
    ctx: dict[str, Any] = {
        "is_kubernetes": kc is not None,
        "kind": "",
        "api_version": "",
        "namespace": "",
        "name": "",
        "version_upgrade": "",
        "version_downgrade": "",
        "has_sha_change": False,
        "replica_delta": 0,
        "has_env_change": False,
        "has_resource_change": False,
    }
    if kc is None:
        return ctx

    ctx.update(kind=kc.kind, api_version=kc.api_version, namespace=kc.namespace, name=kc.name)

    bumps = {vc.change_type for vc in kc.version_changes}
    for bump in _UPGRADE_ORDER:
        if bump in bumps:
            ctx["version_upgrade"] = bump.value
            break

    ctx["has_sha_change"] = any(vc.value_type in SHA_VALUE_TYPES for vc in kc.version_changes)

    if kc.scaling is not None:
        ctx["replica_delta"] = _replica_delta(kc.scaling)
        ctx["has_resource_change"] = _has_resource_change(kc.scaling)

    ctx["has_env_change"] = kc.environment_change is not None
    return ctx


def _replica_delta(scaling: Scaling) -> int:
    if scaling.replicas is None or scaling.new_replicas is None:
        return 0
    return scaling.new_replicas - scaling.replicas


def _has_resource_change(scaling: Scaling) -> bool:
    cpu = bool(scaling.old_cpu) and bool(scaling.new_cpu)
    memory = bool(scaling.old_memory) and bool(scaling.new_memory)
    return cpu or memory


def _file_context(path: str) -> dict[str, Any]:
    base = os.path.basename(path)
    # Dotfiles such as ".env" count as their own extension
    dot = base.rfind(".")
    ext = base[dot:] if dot != -1 else ""
    return {
        "extension": ext,
        "directory": os.path.dirname(path),
        "is_test": any(marker in base for marker in ("_test.", ".test.", ".spec.")),
        "is_config": (
            "config" in base
            or ext in _CONFIG_EXTENSIONS
            or base == ".env"
            or base.startswith(".env.")
        ),
        "tech": _TECH_BY_EXTENSION.get(ext, ""),
    }
