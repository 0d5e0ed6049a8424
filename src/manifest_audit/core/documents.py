"""Multi-document YAML splitting with source line tracking."""

from __future__ import annotations

from typing import Any, Iterable

import yaml

from manifest_audit.models.kubernetes import KubernetesRef, YAMLDocument
from manifest_audit.utils.errors import safe_get
from manifest_audit.utils.logging import get_logger

logger = get_logger(__name__)

YAML_EXTENSIONS = (".yaml", ".yml")


class ParsedDocuments(list):
    """Documents parsed from one YAML stream.

    Behaves as a list of YAMLDocument and also records how many segments
    were skipped because they were malformed or not mappings.
    """

    def __init__(self, documents: Iterable[YAMLDocument] = (), skipped: int = 0) -> None:
        super().__init__(documents)
        self.skipped = skipped

    @property
    def kubernetes(self) -> list[YAMLDocument]:
        """Only the documents that are Kubernetes resources."""
        return [doc for doc in self if doc.is_kubernetes_resource]


def is_yaml(path: str) -> bool:
    """Check for a .yaml or .yml extension, case-insensitively."""
    return path.lower().endswith(YAML_EXTENSIONS)


def parse_yaml_documents(content: str) -> ParsedDocuments:
    """Split a YAML stream on ``---`` lines and parse each document.

    A document starts on the line after its separator (line 1 for the
    first) and ends on the line before the next separator, or on the last
    line of the file. Empty documents are dropped. Documents that fail to
    parse, or that parse to something other than a mapping, are skipped
    and counted.
    """
    if not content:
        return ParsedDocuments()

    lines = content.split("\n")
    documents: list[YAMLDocument] = []
    skipped = 0

    start = 1
    bounds: list[tuple[int, int]] = []
    for number, line in enumerate(lines, start=1):
        if line.strip() == "---":
            bounds.append((start, number - 1))
            start = number + 1
    bounds.append((start, len(lines)))

    for first, last in bounds:
        if last < first:
            continue
        segment = "\n".join(lines[first - 1 : last])
        try:
            data = yaml.safe_load(segment)
        except yaml.YAMLError as e:
            logger.debug("Skipping malformed YAML document at lines %d-%d: %s", first, last, e)
            skipped += 1
            continue

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.debug(
                "Skipping non-mapping YAML document at lines %d-%d (%s)",
                first,
                last,
                type(data).__name__,
            )
            skipped += 1
            continue

        documents.append(YAMLDocument(start_line=first, end_line=last, content=data))

    return ParsedDocuments(documents, skipped=skipped)


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


def extract_kubernetes_ref(doc: YAMLDocument) -> KubernetesRef | None:
    """Build a resource reference from a document, None if not a resource."""
    content = doc.content
    if not doc.is_kubernetes_resource:
        return None

    def _str(value: Any) -> str:
        return value if isinstance(value, str) else ""

    return KubernetesRef(
        api_version=_str(content.get("apiVersion")),
        kind=_str(content.get("kind")),
        namespace=_str(safe_get(content, "metadata", "namespace", default="")),
        name=_str(safe_get(content, "metadata", "name", default="")),
        start_line=doc.start_line,
        end_line=doc.end_line,
        labels=_string_map(safe_get(content, "metadata", "labels")),
        annotations=_string_map(safe_get(content, "metadata", "annotations")),
    )
