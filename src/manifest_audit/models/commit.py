"""Commit and file-change models supplied by the version-control collaborator."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from manifest_audit.models.kubernetes import KubernetesChange
from manifest_audit.models.severity import Severity


class FileChangeType(str, Enum):
    """How a file changed in a commit."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineRange(BaseModel):
    """An inclusive range of line numbers."""

    model_config = {"frozen": True}

    start: int
    end: int

    def __str__(self) -> str:
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"


class LineRanges(BaseModel):
    """A compact, sorted set of line numbers."""

    model_config = {"frozen": True}

    ranges: list[LineRange] = Field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: list[int] | set[int]) -> "LineRanges":
        """Collapse line numbers in any order into contiguous ranges."""
        ranges: list[LineRange] = []
        start = end = None
        for line in sorted(set(lines)):
            if start is None:
                start = end = line
            elif line == end + 1:
                end = line
            else:
                ranges.append(LineRange(start=start, end=end))
                start = end = line
        if start is not None:
            ranges.append(LineRange(start=start, end=end))
        return cls(ranges=ranges)

    def lines(self) -> list[int]:
        """Expand back into individual line numbers."""
        return [n for r in self.ranges for n in range(r.start, r.end + 1)]

    def __len__(self) -> int:
        return sum(r.end - r.start + 1 for r in self.ranges)

    def __str__(self) -> str:
        return ",".join(str(r) for r in self.ranges)


class CommitChange(BaseModel):
    """One file touched by a commit.

    This is the only mutable model: the analyzer attaches the detected
    Kubernetes changes, the affected line ranges and the overall severity.
    """

    file: str = Field(description="Path of the file in the repository")
    type: FileChangeType = Field(default=FileChangeType.MODIFIED, description="File change type")
    adds: int = Field(default=0, description="Lines added")
    dels: int = Field(default=0, description="Lines deleted")
    lines_changed: LineRanges = Field(default_factory=LineRanges)
    kubernetes_changes: list[KubernetesChange] = Field(default_factory=list)
    severity: Severity | None = Field(default=None, description="Max severity of its changes")
    skipped_documents: int = Field(
        default=0, description="Malformed YAML documents skipped while parsing"
    )


class Commit(BaseModel):
    """Commit metadata and its combined unified diff."""

    hash: str = Field(description="Commit hash or ref")
    author: str = ""
    author_email: str = ""
    subject: str = ""
    body: str = ""
    commit_type: str = Field(default="", description="Conventional commit type, if known")
    scope: str = Field(default="", description="Conventional commit scope, if known")
    patch: str = Field(default="", description="Unified diff of the whole commit")
    file_patches: dict[str, str] = Field(
        default_factory=dict, description="Per-file unified diffs, overriding patch"
    )
    changes: list[CommitChange] = Field(default_factory=list)
    total_line_changes: int = Field(default=0, description="Lines added plus deleted")
    total_resource_count: int = Field(default=0, description="Kubernetes resources touched")

    @property
    def parent_ref(self) -> str:
        return f"{self.hash}^"

    def get_file_patch(self, path: str) -> str:
        """Return the part of the commit diff that belongs to one file."""
        if path in self.file_patches:
            return self.file_patches[path]

        sections: list[str] = []
        current: list[str] | None = None
        for line in self.patch.split("\n"):
            if line.startswith("diff --git"):
                if current is not None:
                    sections.append("\n".join(current))
                current = [line] if _diff_header_path(line) == path else None
            elif current is not None:
                current.append(line)
        if current is not None:
            sections.append("\n".join(current))
        return "\n".join(sections)


def _diff_header_path(header: str) -> str:
    """Extract the b/ path from a 'diff --git a/x b/x' header."""
    idx = header.find(' "b/')
    if idx != -1:
        path = header[idx + 4 :]
        end = path.find('"')
        return path[:end] if end != -1 else path
    idx = header.find(" b/")
    if idx != -1:
        return header[idx + 3 :]
    return ""
