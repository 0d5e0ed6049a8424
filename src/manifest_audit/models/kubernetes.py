"""Kubernetes change data models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from rich.text import Text

from manifest_audit.models.severity import Severity


class ChangeType(str, Enum):
    """How a resource changed between two commits."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class SourceType(str, Enum):
    """Authoring mechanism of a manifest."""

    KUSTOMIZE = "kustomize"
    HELM = "helm"
    YAML = "yaml"
    FLUX = "flux"
    ARGOCD = "argocd"


class PatchOperation(str, Enum):
    """RFC 6902 operations emitted by the patch generator."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class VersionChangeType(str, Enum):
    """Kind of version bump. Only upgrades are classified."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    UNKNOWN = "unknown"


class ValueType(str, Enum):
    """What kind of value a version-like field holds."""

    SEMVER = "semver"
    SHA256 = "sha256"
    GIT_SHA = "git-sha"
    COMBINED = "combined"


SHA_VALUE_TYPES = frozenset({ValueType.SHA256, ValueType.GIT_SHA, ValueType.COMBINED})

_CHANGE_STYLES = {
    ChangeType.ADDED: "green",
    ChangeType.MODIFIED: "yellow",
    ChangeType.DELETED: "red",
}

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "bold dark_orange",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "dim",
}


class YAMLDocument(BaseModel):
    """A parsed YAML document and the source lines it spans (1-based)."""

    model_config = {"frozen": True}

    start_line: int = Field(description="First line of the document content")
    end_line: int = Field(description="Last line before the next separator or EOF")
    content: dict[str, Any] = Field(default_factory=dict, description="Parsed document body")

    @property
    def is_kubernetes_resource(self) -> bool:
        """A document is a resource when it has both apiVersion and kind."""
        return "apiVersion" in self.content and "kind" in self.content

    def contains_line(self, line: int) -> bool:
        """Check whether a line number falls inside this document."""
        return self.start_line <= line <= self.end_line


class KubernetesRef(BaseModel):
    """Identity and location of a Kubernetes resource."""

    model_config = {"frozen": True}

    api_version: str = Field(default="", description="Resource apiVersion")
    kind: str = Field(default="", description="Resource kind")
    namespace: str = Field(default="", description="metadata.namespace")
    name: str = Field(default="", description="metadata.name")
    json_path: str = Field(default="", description="JSONPath to a field within the resource")
    start_line: int = Field(default=0, description="First source line of the document")
    end_line: int = Field(default=0, description="Last source line of the document")
    labels: dict[str, str] = Field(default_factory=dict, description="String labels")
    annotations: dict[str, str] = Field(default_factory=dict, description="String annotations")

    @property
    def identity(self) -> tuple[str, str, str]:
        """The (kind, name, namespace) triple used for correlation."""
        return (self.kind, self.name, self.namespace)

    def pretty(self) -> Text:
        text = Text(self.kind)
        text.append("/", style="dim")
        text.append(self.name, style="bold")
        if self.namespace:
            text.append(f" ({self.namespace})", style="dim")
        return text


class ExtendedPatch(BaseModel):
    """One JSON Patch operation with the value it replaced or removed."""

    model_config = {"frozen": True}

    op: PatchOperation = Field(description="Patch operation")
    path: str = Field(description="JSON Pointer of the changed field")
    value: Any = Field(default=None, description="New value (add/replace)")
    old_value: Any = Field(default=None, description="Previous value (remove/replace)")


class Scaling(BaseModel):
    """Replica and resource changes. Untouched fields stay unset."""

    model_config = {"frozen": True}

    old_cpu: str = ""
    new_cpu: str = ""
    old_memory: str = ""
    new_memory: str = ""
    replicas: int | None = None
    new_replicas: int | None = None

    def pretty(self) -> Text:
        parts: list[Text] = []
        if self.replicas is not None and self.new_replicas is not None:
            parts.append(_arrow("replicas", str(self.replicas), str(self.new_replicas)))
        if self.old_cpu and self.new_cpu:
            parts.append(_arrow("cpu", self.old_cpu, self.new_cpu))
        if self.old_memory and self.new_memory:
            parts.append(_arrow("memory", self.old_memory, self.new_memory))
        return Text(", ").join(parts)


class VersionChange(BaseModel):
    """A classified change of a version-like field."""

    model_config = {"frozen": True}

    old_version: str = Field(default="", description="Previous version, tag or digest")
    new_version: str = Field(default="", description="New version, tag or digest")
    change_type: VersionChangeType = Field(
        default=VersionChangeType.UNKNOWN, description="Upgrade classification"
    )
    field_path: str = Field(default="", description="Dot-notation path of the field")
    value_type: ValueType | None = Field(default=None, description="Kind of value compared")
    digest: str = Field(default="", description="New image digest, when present")

    def pretty(self) -> Text:
        text = Text(self.old_version or "<none>", style="red")
        text.append(" → ", style="dim")
        text.append(self.new_version or "<none>", style="green")
        if self.change_type != VersionChangeType.UNKNOWN:
            text.append(f" {self.change_type.value}", style="bold")
        return text


class EnvironmentChange(BaseModel):
    """Literal container environment before and after the change."""

    model_config = {"frozen": True}

    old: dict[str, str] = Field(default_factory=dict)
    new: dict[str, str] = Field(default_factory=dict)

    def pretty(self) -> Text:
        def _fmt(env: dict[str, str]) -> str:
            return ", ".join(f"{k}={v}" for k, v in sorted(env.items()))

        text = Text("env ", style="dim")
        text.append("{" + _fmt(self.old) + "}")
        text.append(" » ", style="dim")
        text.append("{" + _fmt(self.new) + "}")
        return text


class KubernetesChange(BaseModel):
    """One correlated before/after resource change in a commit."""

    model_config = {"frozen": True}

    ref: KubernetesRef = Field(description="Resource identity and location")
    change_type: ChangeType = Field(description="Added, modified or deleted")
    source_type: SourceType = Field(default=SourceType.YAML, description="Manifest origin")
    patches: list[ExtendedPatch] = Field(default_factory=list, description="RFC 6902 diff")
    scaling: Scaling | None = Field(default=None, description="Replica/resource changes")
    version_changes: list[VersionChange] = Field(
        default_factory=list, description="Image and version bumps"
    )
    environment_change: EnvironmentChange | None = Field(
        default=None, description="Literal env var changes"
    )
    severity: Severity = Field(default=Severity.MEDIUM, description="Assigned severity")
    before: dict[str, Any] = Field(default_factory=dict, description="Body before the change")
    after: dict[str, Any] = Field(default_factory=dict, description="Body after the change")
    fields_changed: list[str] = Field(
        default_factory=list, description="Dot-notation paths of every patch"
    )
    field_change_count: int = Field(default=0, description="Number of patches")

    @property
    def kind(self) -> str:
        return self.ref.kind

    @property
    def name(self) -> str:
        return self.ref.name

    @property
    def namespace(self) -> str:
        return self.ref.namespace

    @property
    def api_version(self) -> str:
        return self.ref.api_version

    @property
    def start_line(self) -> int:
        return self.ref.start_line

    @property
    def end_line(self) -> int:
        return self.ref.end_line

    def pretty(self) -> Text:
        """One-line rendering for terminal reports."""
        text = Text(f"[{self.severity.value.upper()}]", style=_SEVERITY_STYLES[self.severity])
        text.append(" ")
        text.append(self.change_type.value, style=_CHANGE_STYLES[self.change_type])
        text.append(" ")
        ref = self.ref.pretty()
        if self.change_type == ChangeType.DELETED:
            ref.stylize("strike")
        text.append_text(ref)
        if self.scaling is not None:
            text.append(" ")
            text.append_text(self.scaling.pretty())
        for vc in self.version_changes:
            text.append(" ")
            text.append_text(vc.pretty())
        if self.environment_change is not None:
            text.append(" ")
            text.append_text(self.environment_change.pretty())
        return text


def _arrow(label: str, old: str, new: str) -> Text:
    text = Text(f"{label}: ", style="dim")
    text.append(old, style="blue")
    text.append(" » ", style="dim")
    text.append(new, style="bold blue")
    return text
