"""Before/after correlation of YAML documents."""

from __future__ import annotations

from typing import NamedTuple, Sequence

from manifest_audit.core.documents import extract_kubernetes_ref
from manifest_audit.models.kubernetes import ChangeType, YAMLDocument


class DocumentPair(NamedTuple):
    """A correlated document pair. One side is None for additions and deletions."""

    before: YAMLDocument | None
    after: YAMLDocument | None
    change_type: ChangeType

    @property
    def document(self) -> YAMLDocument:
        """The document that identifies the resource: after, or before for deletions."""
        return self.after if self.after is not None else self.before  # type: ignore[return-value]


def find_affected_documents(documents: Sequence[YAMLDocument], changed_lines: Sequence[int]) -> list[int]:
    """Indices of documents whose line range contains any changed line."""
    return [
        i
        for i, doc in enumerate(documents)
        if any(doc.contains_line(line) for line in changed_lines)
    ]


def _identity(doc: YAMLDocument) -> tuple[str, str, str] | None:
    ref = extract_kubernetes_ref(doc)
    return ref.identity if ref is not None else None


def correlate_documents(
    before_docs: Sequence[YAMLDocument],
    after_docs: Sequence[YAMLDocument],
    added_lines: Sequence[int],
) -> list[DocumentPair]:
    """Match changed after-documents to before-documents by identity.

    Affected after-side resources become modifications when a before-side
    resource shares their (kind, name, namespace), additions otherwise.
    When the after side holds fewer resources than the before side, every
    before-side resource with no identity match on the after side is a
    deletion. Additions and modifications come first, in after-document
    order, followed by deletions in before-document order.
    """
    before_k8s = [(doc, _identity(doc)) for doc in before_docs if doc.is_kubernetes_resource]
    after_k8s = [(doc, _identity(doc)) for doc in after_docs if doc.is_kubernetes_resource]

    pairs: list[DocumentPair] = []
    for idx in find_affected_documents(after_docs, added_lines):
        after = after_docs[idx]
        if not after.is_kubernetes_resource:
            continue
        identity = _identity(after)
        before = next((doc for doc, ident in before_k8s if ident == identity), None)
        if before is None:
            pairs.append(DocumentPair(None, after, ChangeType.ADDED))
        else:
            pairs.append(DocumentPair(before, after, ChangeType.MODIFIED))

    if len(after_k8s) < len(before_k8s):
        after_identities = {ident for _, ident in after_k8s}
        for before, ident in before_k8s:
            if ident not in after_identities:
                pairs.append(DocumentPair(before, None, ChangeType.DELETED))

    return pairs
