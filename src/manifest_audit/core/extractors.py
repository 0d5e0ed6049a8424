"""Domain extractors: scaling, version and environment changes."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Any, Sequence

from manifest_audit.core.patch import get_value_from_path, pointer_to_dot_notation
from manifest_audit.core.version import detect_version_change
from manifest_audit.models.kubernetes import (
    EnvironmentChange,
    ExtendedPatch,
    Scaling,
    VersionChange,
)
from manifest_audit.utils.errors import safe_get

DEFAULT_VERSION_PATTERNS = ("**.image", "**.tag", "**.version", "**.appVersion", "**.imageTag")


def _glob(pattern: str, path: str) -> bool:
    """Match dotted paths where ``*`` stays inside one segment."""
    pattern_parts = pattern.split(".")
    path_parts = path.split(".")
    if len(pattern_parts) != len(path_parts):
        return False
    return all(fnmatchcase(seg, pat) for seg, pat in zip(path_parts, pattern_parts))


def matches_pattern(field_path: str, pattern: str) -> bool:
    """Check a dot-notation field path against a glob pattern.

    ``*`` matches within one segment. A single ``**`` stands for any
    leading (or trailing) run of segments:

        matches_pattern("spec.template.spec.containers.0.image", "**.image")  # True
        matches_pattern("spec.containers.0.image", "*.image")  # False
    """
    parts = pattern.split("**")
    if len(parts) == 2:
        prefix = parts[0].removesuffix(".")
        suffix = parts[1].removeprefix(".")

        if suffix and "*" in suffix:
            if not prefix:
                path_parts = field_path.split(".")
                width = len(suffix.split("."))
                return any(
                    _glob(suffix, ".".join(path_parts[i : i + width]))
                    for i in range(len(path_parts) - width + 1)
                )
            remainder = field_path.removeprefix(prefix + ".")
            return _glob(suffix, remainder)

        has_prefix = not prefix or field_path.startswith(prefix + ".")
        has_suffix = not suffix or field_path.endswith("." + suffix)
        return has_prefix and has_suffix

    return _glob(pattern, field_path)


def _int_at(body: dict[str, Any] | None, path: str) -> int | None:
    value = get_value_from_path(body, path) if body else None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _str_at(body: dict[str, Any] | None, path: str) -> str:
    value = get_value_from_path(body, path) if body else None
    return value if isinstance(value, str) else ""


def extract_scaling_changes(
    patches: Sequence[ExtendedPatch],
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
) -> Scaling | None:
    """Collect replica and CPU/memory changes touched by the patches.

    Returns None when no patch touches replicas or container resources.
    """
    fields: dict[str, Any] = {}
    touched = False
    for patch in patches:
        path = patch.path

        if "/replicas" in path:
            touched = True
            for key, body in (("replicas", before), ("new_replicas", after)):
                count = _int_at(body, path)
                if count is not None:
                    fields[key] = count

        if "/resources" in path and "/cpu" in path:
            touched = True
            fields["old_cpu"] = _str_at(before, path)
            fields["new_cpu"] = _str_at(after, path)

        if "/resources" in path and "/memory" in path:
            touched = True
            fields["old_memory"] = _str_at(before, path)
            fields["new_memory"] = _str_at(after, path)

    if not touched:
        return None
    return Scaling(**fields)


def extract_all_version_changes(
    patches: Sequence[ExtendedPatch],
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
    patterns: Sequence[str] | None = None,
) -> list[VersionChange]:
    """Classify changes to version-like fields (image, tag, version...)."""
    patterns = patterns or DEFAULT_VERSION_PATTERNS
    changes = []
    for patch in patches:
        field_path = pointer_to_dot_notation(patch.path)
        if not any(matches_pattern(field_path, p) for p in patterns):
            continue

        old = _str_at(before, patch.path)
        new = _str_at(after, patch.path)
        if not old and not new:
            continue

        vc = detect_version_change(old, new, field_path)
        if vc is not None:
            changes.append(vc)
    return changes


def extract_env_vars(content: dict[str, Any] | None) -> dict[str, str]:
    """Literal env values of ``spec.containers[*].env``. ``valueFrom`` is ignored."""
    env_vars: dict[str, str] = {}
    containers = safe_get(content, "spec", "containers", default=[])
    if not isinstance(containers, list):
        return env_vars

    for container in containers:
        if not isinstance(container, dict):
            continue
        env = container.get("env")
        if not isinstance(env, list):
            continue
        for entry in env:
            if not isinstance(entry, dict):
                continue
            name, value = entry.get("name"), entry.get("value")
            if isinstance(name, str) and isinstance(value, str):
                env_vars[name] = value
    return env_vars


def extract_environment_changes(
    patches: Sequence[ExtendedPatch],
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
) -> EnvironmentChange | None:
    """Container environment before and after, None when both are empty."""
    old_env = extract_env_vars(before)
    new_env = extract_env_vars(after)
    if not old_env and not new_env:
        return None
    return EnvironmentChange(old=old_env, new=new_env)
