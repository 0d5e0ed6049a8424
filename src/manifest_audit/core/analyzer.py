"""Kubernetes change analysis for the files of a commit."""

from __future__ import annotations

from typing import Protocol, Sequence

from manifest_audit.core.changed_lines import extract_changed_lines
from manifest_audit.core.correlate import DocumentPair, correlate_documents
from manifest_audit.core.documents import (
    extract_kubernetes_ref,
    is_yaml,
    parse_yaml_documents,
)
from manifest_audit.core.extractors import (
    extract_all_version_changes,
    extract_environment_changes,
    extract_scaling_changes,
)
from manifest_audit.core.patch import JSONPatches, generate_json_patches
from manifest_audit.core.severity import determine_change_severity
from manifest_audit.core.source_type import determine_source_type
from manifest_audit.models.commit import Commit, CommitChange, FileChangeType, LineRanges
from manifest_audit.models.kubernetes import ChangeType, KubernetesChange
from manifest_audit.models.rules import SeverityConfig
from manifest_audit.models.severity import max_severity
from manifest_audit.rules.context import build_context
from manifest_audit.rules.engine import Engine
from manifest_audit.utils.errors import PatchGenerationError
from manifest_audit.utils.logging import get_logger, get_logger_with_context

logger = get_logger(__name__)


class FileReader(Protocol):
    """Reads a file's content at a commit ref. Raises on failure."""

    def read_file(self, path: str, ref: str) -> str: ...


class AnalyzerContext(FileReader, Protocol):
    """File access plus the severity configuration to classify with."""

    def get_severity_config(self) -> SeverityConfig | None: ...

    def get_severity_engine(self) -> Engine | None: ...


class KubernetesChangeAnalyzer:
    """Finds the Kubernetes resources a commit changed and rates them.

    For each YAML file the analyzer reads the file before and after the
    commit, splits both into documents, correlates resources by identity,
    diffs modified resources and extracts scaling, version and environment
    changes. Each change gets a severity from the rule engine, or from the
    fixed fallback when no engine is given.

    Example:
        analyzer = KubernetesChangeAnalyzer(git_reader, engine=Engine())
        for change in analyzer.analyze_commit(commit):
            for kc in change.kubernetes_changes:
                console.print(kc.pretty())
    """

    def __init__(
        self,
        reader: FileReader,
        engine: Engine | None = None,
        version_patterns: Sequence[str] | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            reader: Source of file contents at a commit ref
            engine: Severity rule engine, the fixed fallback when None
            version_patterns: Glob patterns of version-like fields
        """
        self._reader = reader
        self._engine = engine
        self._version_patterns = list(version_patterns) if version_patterns else None

    def analyze(self, commit: Commit, change: CommitChange) -> CommitChange:
        """Attach Kubernetes changes, line ranges and severity to a file change.

        Non-YAML files are returned untouched, as is the change when either
        side of the file cannot be read.
        """
        log = get_logger_with_context(__name__, file=change.file, commit=commit.hash)
        if not is_yaml(change.file):
            return change
        log.debug("Analyzing Kubernetes changes")

        before_content = after_content = ""
        try:
            if change.type != FileChangeType.ADDED:
                before_content = self._reader.read_file(change.file, commit.parent_ref)
            if change.type != FileChangeType.DELETED:
                after_content = self._reader.read_file(change.file, commit.hash)
        except Exception as e:
            log.error(f"Error reading file: {e}")
            return change

        before_docs = parse_yaml_documents(before_content)
        after_docs = parse_yaml_documents(after_content)

        added, _ = extract_changed_lines(commit.get_file_patch(change.file))
        pairs = correlate_documents(before_docs, after_docs, added)

        change.kubernetes_changes = []
        lines: set[int] = set()
        for pair in pairs:
            k8s_change = self._create_change(commit, change, pair)
            change.kubernetes_changes.append(k8s_change)
            doc = pair.document
            lines.update(range(doc.start_line, doc.end_line + 1))

        change.lines_changed = LineRanges.from_lines(lines)
        change.skipped_documents = before_docs.skipped + after_docs.skipped
        if change.kubernetes_changes:
            change.severity = max_severity([kc.severity for kc in change.kubernetes_changes])

        log.debug(f"Found {len(change.kubernetes_changes)} Kubernetes changes")
        return change

    def analyze_commit(self, commit: Commit) -> list[CommitChange]:
        """Analyze every file of a commit. One failing file does not stop the rest."""
        results = []
        for change in commit.changes:
            try:
                results.append(self.analyze(commit, change))
            except Exception:
                logger.exception(f"Failed to analyze {change.file} @ {commit.hash}")
                results.append(change)
        return results

    def _create_change(
        self, commit: Commit, change: CommitChange, pair: DocumentPair
    ) -> KubernetesChange:
        ref = extract_kubernetes_ref(pair.document)
        before = pair.before.content if pair.before is not None else {}
        after = pair.after.content if pair.after is not None else {}

        patches = JSONPatches()
        scaling = environment_change = None
        version_changes = []
        if pair.change_type == ChangeType.MODIFIED:
            try:
                patches = generate_json_patches(before, after)
            except PatchGenerationError as e:
                logger.warning(f"Could not diff {ref.kind}/{ref.name}: {e}")
            scaling = extract_scaling_changes(patches, before, after)
            version_changes = extract_all_version_changes(
                patches, before, after, self._version_patterns
            )
            environment_change = extract_environment_changes(patches, before, after)

        k8s_change = KubernetesChange(
            ref=ref,
            change_type=pair.change_type,
            source_type=determine_source_type(change.file, after),
            patches=list(patches),
            scaling=scaling,
            version_changes=version_changes,
            environment_change=environment_change,
            before=before,
            after=after,
            fields_changed=patches.field_paths(),
            field_change_count=len(patches),
        )

        if self._engine is not None:
            severity = self._engine.evaluate(build_context(commit, change, k8s_change))
        else:
            severity = determine_change_severity(pair.change_type, patches, version_changes)
        return k8s_change.model_copy(update={"severity": severity})


def analyze_kubernetes_changes(
    ctx: AnalyzerContext, commit: Commit, change: CommitChange
) -> CommitChange:
    """Analyze one file change using the reader and engine a context provides."""
    analyzer = KubernetesChangeAnalyzer(ctx, engine=ctx.get_severity_engine())
    return analyzer.analyze(commit, change)
