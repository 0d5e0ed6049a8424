"""Integration tests for end-to-end commit analysis."""

import pytest

from conftest import (
    AFTER_MANIFEST,
    BEFORE_MANIFEST,
    DELETE_SERVICE_PATCH,
    DEPLOYMENT_ONLY,
    MANIFEST_PATH,
    MODIFY_PATCH,
    InMemoryReader,
    added_file_patch,
    make_commit,
)
from manifest_audit.core.analyzer import KubernetesChangeAnalyzer, analyze_kubernetes_changes
from manifest_audit.models.commit import Commit, CommitChange, FileChangeType
from manifest_audit.models.kubernetes import (
    ChangeType,
    PatchOperation,
    Scaling,
    SourceType,
    ValueType,
    VersionChangeType,
)
from manifest_audit.models.rules import SeverityConfig
from manifest_audit.models.severity import Severity
from manifest_audit.rules.engine import Engine


@pytest.fixture(scope="module")
def engine():
    return Engine()


class TestModifiedManifest:
    """A commit that scales a Deployment and bumps its image."""

    def test_resource_change(self, engine, modify_reader):
        commit, change = make_commit(MODIFY_PATCH)
        result = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(commit, change)

        assert result is change
        [kc] = result.kubernetes_changes
        assert kc.change_type == ChangeType.MODIFIED
        assert kc.kind == "Deployment"
        assert kc.namespace == "prod"
        assert kc.source_type == SourceType.YAML
        assert (kc.start_line, kc.end_line) == (1, 15)
        assert kc.before["spec"]["replicas"] == 2
        assert kc.after["spec"]["replicas"] == 5

    def test_patches_and_extractors(self, engine, modify_reader):
        commit, change = make_commit(MODIFY_PATCH)
        [kc] = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(
            commit, change
        ).kubernetes_changes

        assert {(p.op, p.path, p.old_value, p.value) for p in kc.patches} == {
            (PatchOperation.REPLACE, "/spec/replicas", 2, 5),
            (
                PatchOperation.REPLACE,
                "/spec/template/spec/containers/0/image",
                "nginx:1.24.0",
                "nginx:1.25.0",
            ),
        }
        assert kc.field_change_count == 2
        assert set(kc.fields_changed) == {"spec.replicas", "spec.template.spec.containers.0.image"}
        assert kc.scaling == Scaling(replicas=2, new_replicas=5)

        [vc] = kc.version_changes
        assert vc.change_type == VersionChangeType.MINOR
        assert vc.value_type == ValueType.SEMVER
        assert vc.field_path == "spec.template.spec.containers.0.image"
        # Env lives under the pod template, which is not inspected
        assert kc.environment_change is None

    def test_file_summary(self, engine, modify_reader):
        commit, change = make_commit(MODIFY_PATCH)
        result = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(commit, change)

        assert str(result.lines_changed) == "1-15"
        assert result.skipped_documents == 0
        assert result.kubernetes_changes[0].severity == Severity.MEDIUM
        assert result.severity == Severity.MEDIUM
        assert modify_reader.reads == [(MANIFEST_PATH, "abc123^"), (MANIFEST_PATH, "abc123")]

    def test_fallback_severity(self, modify_reader):
        commit, change = make_commit(MODIFY_PATCH)
        result = KubernetesChangeAnalyzer(modify_reader).analyze(commit, change)
        assert result.severity == Severity.MEDIUM

    def test_custom_rules(self, modify_reader, sample_severity_file):
        from manifest_audit.rules.config import load_severity_config

        engine = Engine(load_severity_config(sample_severity_file))
        commit, change = make_commit(MODIFY_PATCH)
        result = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(commit, change)
        assert result.severity == Severity.CRITICAL

    def test_unmatched_rules_use_default(self, modify_reader):
        engine = Engine(SeverityConfig(default=Severity.INFO))
        commit, change = make_commit(MODIFY_PATCH)
        result = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(commit, change)
        assert result.severity == Severity.INFO

    def test_custom_version_patterns(self, engine, modify_reader):
        commit, change = make_commit(MODIFY_PATCH)
        analyzer = KubernetesChangeAnalyzer(modify_reader, engine=engine, version_patterns=["**.tag"])
        [kc] = analyzer.analyze(commit, change).kubernetes_changes
        assert kc.version_changes == []

    def test_idempotent(self, engine, modify_reader):
        commit, change = make_commit(MODIFY_PATCH)
        analyzer = KubernetesChangeAnalyzer(modify_reader, engine=engine)
        first = analyzer.analyze(commit, change).model_dump_json()
        second = analyzer.analyze(commit, change).model_dump_json()
        assert first == second

    def test_patch_from_commit_diff(self, engine, modify_reader):
        """Without per-file patches the file's section of the commit diff is used."""
        other = "diff --git a/README.md b/README.md\n@@ -1 +1 @@\n-a\n+b\n"
        commit, change = make_commit(other + MODIFY_PATCH)
        result = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(commit, change)
        assert len(result.kubernetes_changes) == 1


class TestDeletedResources:
    """Resource and whole-file deletions."""

    @pytest.fixture
    def reader(self):
        return InMemoryReader(
            {
                (MANIFEST_PATH, "abc123^"): BEFORE_MANIFEST,
                (MANIFEST_PATH, "abc123"): DEPLOYMENT_ONLY,
            }
        )

    def test_service_removed(self, engine, reader):
        commit, change = make_commit(DELETE_SERVICE_PATCH)
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)

        [kc] = result.kubernetes_changes
        assert kc.change_type == ChangeType.DELETED
        assert kc.kind == "Service"
        assert kc.before["kind"] == "Service"
        assert kc.after == {}
        assert kc.patches == []
        assert kc.severity == Severity.HIGH
        assert str(result.lines_changed) == "17-25"

    def test_service_removed_fallback(self, reader):
        commit, change = make_commit(DELETE_SERVICE_PATCH)
        result = KubernetesChangeAnalyzer(reader).analyze(commit, change)
        assert result.kubernetes_changes[0].severity == Severity.HIGH

    def test_file_deleted(self, engine):
        reader = InMemoryReader({(MANIFEST_PATH, "abc123^"): BEFORE_MANIFEST})
        commit, change = make_commit("", file_type=FileChangeType.DELETED)
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)

        assert [(kc.kind, kc.change_type) for kc in result.kubernetes_changes] == [
            ("Deployment", ChangeType.DELETED),
            ("Service", ChangeType.DELETED),
        ]
        assert all(kc.severity == Severity.CRITICAL for kc in result.kubernetes_changes)
        assert result.severity == Severity.CRITICAL
        assert reader.reads == [(MANIFEST_PATH, "abc123^")]

    def test_file_deleted_fallback(self):
        reader = InMemoryReader({(MANIFEST_PATH, "abc123^"): BEFORE_MANIFEST})
        commit, change = make_commit("", file_type=FileChangeType.DELETED)
        result = KubernetesChangeAnalyzer(reader).analyze(commit, change)
        assert result.severity == Severity.HIGH


class TestAddedFile:
    """A commit that adds a new manifest."""

    def test_every_resource_added(self, engine):
        reader = InMemoryReader({(MANIFEST_PATH, "abc123"): AFTER_MANIFEST})
        commit, change = make_commit(added_file_patch(AFTER_MANIFEST), file_type=FileChangeType.ADDED)
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)

        assert [(kc.kind, kc.change_type, kc.severity) for kc in result.kubernetes_changes] == [
            ("Deployment", ChangeType.ADDED, Severity.MEDIUM),
            ("Service", ChangeType.ADDED, Severity.HIGH),
        ]
        added = result.kubernetes_changes[0]
        assert added.before == {}
        assert added.patches == []
        assert added.scaling is None
        assert result.severity == Severity.HIGH
        assert reader.reads == [(MANIFEST_PATH, "abc123")]

    def test_malformed_documents_are_counted(self, engine):
        content = AFTER_MANIFEST + "---\nkey: [unclosed\n"
        reader = InMemoryReader({(MANIFEST_PATH, "abc123"): content})
        commit, change = make_commit(added_file_patch(content), file_type=FileChangeType.ADDED)
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)
        assert len(result.kubernetes_changes) == 2
        assert result.skipped_documents == 1


class TestUntouchedChanges:
    """Files the analyzer leaves alone."""

    def test_non_yaml_file(self, engine):
        reader = InMemoryReader({})
        commit, change = make_commit("", path="README.md")
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)
        assert result.kubernetes_changes == []
        assert result.severity is None
        assert reader.reads == []

    def test_read_error(self, engine):
        reader = InMemoryReader({(MANIFEST_PATH, "abc123^"): BEFORE_MANIFEST})
        commit, change = make_commit(MODIFY_PATCH)
        before = change.model_dump()
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)
        assert result.model_dump() == before

    def test_non_kubernetes_yaml(self, engine):
        reader = InMemoryReader(
            {
                ("values.yaml", "abc123^"): "replicas: 1\n",
                ("values.yaml", "abc123"): "replicas: 2\n",
            }
        )
        commit, change = make_commit("@@ -1 +1 @@\n-replicas: 1\n+replicas: 2\n", path="values.yaml")
        result = KubernetesChangeAnalyzer(reader, engine=engine).analyze(commit, change)
        assert result.kubernetes_changes == []
        assert result.severity is None


class BrokenReader(InMemoryReader):
    """Returns bytes for one file, which the YAML splitter cannot handle."""

    def read_file(self, path: str, ref: str):
        content = super().read_file(path, ref)
        return content.encode() if path == "broken.yaml" else content


class TestCommitAnalysis:
    """Tests for whole-commit analysis."""

    def test_failure_is_isolated(self, engine):
        reader = BrokenReader(
            {
                ("broken.yaml", "abc123^"): "a: 1\n",
                ("broken.yaml", "abc123"): "a: 2\n",
                (MANIFEST_PATH, "abc123^"): BEFORE_MANIFEST,
                (MANIFEST_PATH, "abc123"): AFTER_MANIFEST,
            }
        )
        broken = CommitChange(file="broken.yaml")
        manifest = CommitChange(file=MANIFEST_PATH)
        commit = Commit(
            hash="abc123",
            changes=[broken, manifest],
            file_patches={MANIFEST_PATH: MODIFY_PATCH, "broken.yaml": "@@ -1 +1 @@\n-a: 1\n+a: 2"},
        )
        results = KubernetesChangeAnalyzer(reader, engine=engine).analyze_commit(commit)

        assert [r.file for r in results] == ["broken.yaml", MANIFEST_PATH]
        assert results[0].kubernetes_changes == []
        assert results[1].severity == Severity.MEDIUM

    def test_commit_size_rules(self, engine, modify_reader):
        commit, change = make_commit(MODIFY_PATCH, total_line_changes=150)
        result = KubernetesChangeAnalyzer(modify_reader, engine=engine).analyze(commit, change)
        assert result.severity == Severity.HIGH

    def test_analyze_with_context(self, modify_reader):
        class Context:
            def read_file(self, path, ref):
                return modify_reader.read_file(path, ref)

            def get_severity_config(self):
                return SeverityConfig(default=Severity.LOW)

            def get_severity_engine(self):
                return Engine(self.get_severity_config())

        commit, change = make_commit(MODIFY_PATCH)
        result = analyze_kubernetes_changes(Context(), commit, change)
        assert result.severity == Severity.LOW
        assert len(result.kubernetes_changes) == 1
