"""Unit tests for before/after document correlation."""

from manifest_audit.core.correlate import correlate_documents, find_affected_documents
from manifest_audit.models.kubernetes import ChangeType, YAMLDocument


def resource(kind: str, name: str, start: int, end: int, namespace: str = "default", **spec) -> YAMLDocument:
    return YAMLDocument(
        start_line=start,
        end_line=end,
        content={
            "apiVersion": "v1",
            "kind": kind,
            "metadata": {"name": name, "namespace": namespace},
            "spec": spec,
        },
    )


class TestFindAffectedDocuments:
    """Tests for find_affected_documents."""

    def test_lines_inside_ranges(self):
        docs = [resource("A", "a", 1, 5), resource("B", "b", 7, 10), resource("C", "c", 12, 20)]
        assert find_affected_documents(docs, [3, 15]) == [0, 2]

    def test_boundaries_are_inclusive(self):
        docs = [resource("A", "a", 1, 5), resource("B", "b", 7, 10)]
        assert find_affected_documents(docs, [5]) == [0]
        assert find_affected_documents(docs, [7]) == [1]

    def test_separator_lines_hit_nothing(self):
        docs = [resource("A", "a", 1, 5), resource("B", "b", 7, 10)]
        assert find_affected_documents(docs, [6]) == []

    def test_no_changed_lines(self):
        assert find_affected_documents([resource("A", "a", 1, 5)], []) == []


class TestCorrelateDocuments:
    """Tests for correlate_documents."""

    def test_modified_by_identity(self):
        """A changed resource with the same identity on both sides is modified."""
        before = [resource("ConfigMap", "cfg", 1, 6, key="old")]
        after = [resource("ConfigMap", "cfg", 1, 6, key="new")]
        pairs = correlate_documents(before, after, [5])
        assert len(pairs) == 1
        assert pairs[0].change_type == ChangeType.MODIFIED
        assert pairs[0].before is before[0]
        assert pairs[0].after is after[0]

    def test_added_when_no_match(self):
        """A changed resource without a before counterpart is added."""
        before = [resource("ConfigMap", "cfg", 1, 6)]
        after = [resource("ConfigMap", "cfg", 1, 6), resource("Secret", "creds", 8, 14)]
        pairs = correlate_documents(before, after, [10])
        assert [(p.change_type, p.after.content["kind"]) for p in pairs] == [
            (ChangeType.ADDED, "Secret")
        ]
        assert pairs[0].before is None

    def test_namespace_is_part_of_identity(self):
        """Moving a resource to another namespace is an add plus a delete."""
        before = [resource("ConfigMap", "cfg", 1, 6, namespace="dev")]
        after = [resource("ConfigMap", "cfg", 1, 6, namespace="prod")]
        pairs = correlate_documents(before, after, [4])
        # Same resource count on both sides, so no deletion is inferred
        assert [p.change_type for p in pairs] == [ChangeType.ADDED]

    def test_rename_with_fewer_documents(self):
        """Renames are never detected; they surface as add plus delete."""
        before = [resource("ConfigMap", "old", 1, 6), resource("Secret", "s", 8, 12)]
        after = [resource("ConfigMap", "new", 1, 6)]
        pairs = correlate_documents(before, after, [4])
        assert [(p.change_type, p.document.content["metadata"]["name"]) for p in pairs] == [
            (ChangeType.ADDED, "new"),
            (ChangeType.DELETED, "old"),
            (ChangeType.DELETED, "s"),
        ]

    def test_deleted_when_after_has_fewer_resources(self):
        """Unmatched before resources are deleted when the after side shrank."""
        before = [resource("ConfigMap", "cfg", 1, 6), resource("Service", "svc", 8, 14)]
        after = [resource("ConfigMap", "cfg", 1, 6)]
        pairs = correlate_documents(before, after, [])
        assert len(pairs) == 1
        assert pairs[0].change_type == ChangeType.DELETED
        assert pairs[0].after is None
        assert pairs[0].document is before[1]

    def test_whole_file_deleted(self):
        """With an empty after side every resource is deleted, in file order."""
        before = [resource("A", "a", 1, 5), resource("B", "b", 7, 10)]
        pairs = correlate_documents(before, [], [])
        assert [p.document.content["kind"] for p in pairs] == ["A", "B"]
        assert all(p.change_type == ChangeType.DELETED for p in pairs)

    def test_whole_file_added(self):
        """With an empty before side every changed resource is added."""
        after = [resource("A", "a", 1, 5), resource("B", "b", 7, 10)]
        pairs = correlate_documents([], after, list(range(1, 11)))
        assert [p.change_type for p in pairs] == [ChangeType.ADDED, ChangeType.ADDED]

    def test_non_resources_are_ignored(self):
        """Documents without apiVersion and kind never produce pairs."""
        before = [YAMLDocument(start_line=1, end_line=2, content={"values": 1})]
        after = [YAMLDocument(start_line=1, end_line=2, content={"values": 2})]
        assert correlate_documents(before, after, [1]) == []

    def test_adds_and_modifications_before_deletions(self):
        """Deletions always come after additions and modifications."""
        before = [
            resource("A", "a", 1, 5),
            resource("B", "b", 7, 10),
            resource("C", "c", 12, 15),
        ]
        after = [resource("A", "a", 1, 5, x=1), resource("D", "d", 7, 10)]
        pairs = correlate_documents(before, after, [3, 8])
        assert [(p.change_type, p.document.content["kind"]) for p in pairs] == [
            (ChangeType.MODIFIED, "A"),
            (ChangeType.ADDED, "D"),
            (ChangeType.DELETED, "B"),
            (ChangeType.DELETED, "C"),
        ]
