"""Fixed severity classification used when no rule engine is configured."""

from __future__ import annotations

from typing import Sequence

from manifest_audit.models.kubernetes import (
    SHA_VALUE_TYPES,
    ChangeType,
    ExtendedPatch,
    VersionChange,
)
from manifest_audit.models.severity import Severity

# Path fragments that make a modification at least medium
_SENSITIVE_PATHS = (
    "/replicas",
    "/image",
    "/resources/limits",
    "/resources/requests",
    "/env",
    "/volumes",
    "/volumeMounts",
)


def determine_change_severity(
    change_type: ChangeType,
    patches: Sequence[ExtendedPatch],
    version_changes: Sequence[VersionChange],
) -> Severity:
    """Classify a change without rules. Never returns critical."""
    if change_type == ChangeType.DELETED:
        return Severity.HIGH

    if any(vc.value_type in SHA_VALUE_TYPES for vc in version_changes):
        return Severity.MEDIUM

    for patch in patches:
        if any(fragment in patch.path for fragment in _SENSITIVE_PATHS):
            return Severity.MEDIUM

    return Severity.LOW
