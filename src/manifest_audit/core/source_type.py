"""Manifest origin heuristics."""

from __future__ import annotations

import os
from typing import Any

from manifest_audit.models.kubernetes import SourceType


def determine_source_type(file_path: str, content: dict[str, Any] | None) -> SourceType:
    """Guess how a manifest was authored from its path and apiVersion.

    Path hints win over content: kustomize, then helm, then the resource's
    apiVersion (Flux or Argo CD), then plain YAML.
    """
    if "kustomize" in file_path or os.path.basename(file_path) == "kustomization.yaml":
        return SourceType.KUSTOMIZE

    if any(hint in file_path for hint in ("helm", "charts", "templates")):
        return SourceType.HELM

    api_version = (content or {}).get("apiVersion")
    if isinstance(api_version, str):
        if "flux" in api_version:
            return SourceType.FLUX
        if "argoproj.io" in api_version:
            return SourceType.ARGOCD

    return SourceType.YAML
