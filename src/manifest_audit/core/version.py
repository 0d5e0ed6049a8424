"""Version and image reference classification."""

from __future__ import annotations

import re
from typing import NamedTuple

from manifest_audit.models.kubernetes import ValueType, VersionChange, VersionChangeType

_SEMVER = re.compile(
    r"^v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)
_SHA256 = re.compile(r"^[0-9a-fA-F]{64}$")
_GIT_SHA = re.compile(r"^[0-9a-fA-F]{40}$")


class ImageReference(NamedTuple):
    """Parts of a container image reference."""

    registry: str = ""
    name: str = ""
    tag: str = ""
    digest: str = ""


class SemVer(NamedTuple):
    """A parsed semantic version. Missing minor/patch components are zero."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()

    def precedence(self) -> tuple:
        """Sort key: a release ranks above any of its pre-releases."""
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        ids = tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, 0, ids)


def parse_semver(value: str) -> SemVer | None:
    """Parse ``1``, ``1.2``, ``v1.2.3``, ``1.2.3-rc.1+build`` and similar."""
    match = _SEMVER.match(value or "")
    if match is None:
        return None
    pre = match.group("pre")
    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor") or 0),
        patch=int(match.group("patch") or 0),
        prerelease=tuple(pre.split(".")) if pre else (),
    )


def is_semver(value: str) -> bool:
    return parse_semver(value) is not None


def is_sha256(value: str) -> bool:
    """64 hex characters, any case."""
    return bool(_SHA256.match(value or ""))


def is_git_sha(value: str) -> bool:
    """A full 40-character git commit SHA."""
    return bool(_GIT_SHA.match(value or ""))


def parse_image_reference(image: str) -> ImageReference:
    """Split ``registry/name:tag@digest`` into its parts.

    The first path segment is a registry only when it looks like a host
    (contains ``.`` or ``:``), so ``library/nginx`` has no registry.
    """
    image_with_tag, _, digest = image.partition("@")

    name, tag = image_with_tag, ""
    head, sep, last = image_with_tag.rpartition(":")
    if sep and "/" not in last:
        name, tag = head, last

    registry = ""
    if "/" in name:
        first, rest = name.split("/", 1)
        if "." in first or ":" in first:
            registry, name = first, rest

    return ImageReference(registry=registry, name=name, tag=tag, digest=digest)


def analyze_version_change(old: str, new: str) -> VersionChange:
    """Compare two versions and classify the bump.

    Only upgrades are labelled major, minor or patch. Downgrades, equal
    versions and non-semver values stay unknown.
    """
    vc = VersionChange(old_version=old, new_version=new)
    old_v = parse_semver(old)
    new_v = parse_semver(new)
    if old_v is None or new_v is None:
        return vc
    if new_v.precedence() <= old_v.precedence():
        return vc

    if new_v.major > old_v.major:
        change_type = VersionChangeType.MAJOR
    elif new_v.minor > old_v.minor:
        change_type = VersionChangeType.MINOR
    elif new_v.patch > old_v.patch:
        change_type = VersionChangeType.PATCH
    else:
        # Pre-release to release of the same version
        return vc
    return vc.model_copy(update={"change_type": change_type})


def _is_image_reference(value: str) -> bool:
    return "/" in value or "@" in value or ":" in value


def detect_version_change(old: str, new: str, field_path: str) -> VersionChange | None:
    """Classify an old/new value pair of a version-like field.

    Returns None when neither value looks like an image reference, a
    semantic version, a SHA-256 digest or a git SHA.
    """
    if _is_image_reference(old) or _is_image_reference(new):
        return _detect_image_change(old, new, field_path)

    if is_semver(old) or is_semver(new):
        vc = analyze_version_change(old, new)
        return vc.model_copy(update={"field_path": field_path, "value_type": ValueType.SEMVER})

    if is_sha256(old) or is_sha256(new):
        return VersionChange(
            old_version=old, new_version=new, field_path=field_path, value_type=ValueType.SHA256
        )

    if is_git_sha(old) or is_git_sha(new):
        return VersionChange(
            old_version=old, new_version=new, field_path=field_path, value_type=ValueType.GIT_SHA
        )

    return None


def _detect_image_change(old_image: str, new_image: str, field_path: str) -> VersionChange:
    old_ref = parse_image_reference(old_image)
    new_ref = parse_image_reference(new_image)

    digest = ""
    if old_ref.digest or new_ref.digest:
        digest = new_ref.digest
        if old_ref.tag or new_ref.tag:
            old_version, new_version = old_ref.tag, new_ref.tag
            value_type = ValueType.COMBINED
        else:
            old_version, new_version = old_ref.digest, new_ref.digest
            value_type = ValueType.SHA256
    else:
        old_version, new_version = old_ref.tag, new_ref.tag
        value_type = ValueType.SEMVER

    vc = analyze_version_change(old_version, new_version)
    return vc.model_copy(
        update={"field_path": field_path, "value_type": value_type, "digest": digest}
    )
