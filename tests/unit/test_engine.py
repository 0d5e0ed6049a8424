"""Unit tests for the severity rule engine."""

import pytest

from manifest_audit.models.commit import Commit, CommitChange, FileChangeType
from manifest_audit.models.kubernetes import (
    ChangeType,
    KubernetesChange,
    KubernetesRef,
    Scaling,
    VersionChange,
    VersionChangeType,
)
from manifest_audit.models.rules import SeverityConfig, SeverityRule
from manifest_audit.models.severity import Severity
from manifest_audit.rules.context import build_context
from manifest_audit.rules.engine import Engine
from manifest_audit.utils.errors import RuleCompilationError, RuleEvaluationError


def config(*rules, default=Severity.MEDIUM) -> SeverityConfig:
    return SeverityConfig(
        default=default,
        rules=[SeverityRule(expression=e, severity=s) for e, s in rules],
    )


def k8s_change(kind: str, change_type=ChangeType.MODIFIED, **kwargs) -> KubernetesChange:
    return KubernetesChange(
        ref=KubernetesRef(api_version="v1", kind=kind, name="web", namespace="prod"),
        change_type=change_type,
        **kwargs,
    )


def context(kind="Deployment", change_type=ChangeType.MODIFIED, file="k8s/web.yaml",
            file_type=FileChangeType.MODIFIED, commit=None, **kwargs):
    change = CommitChange(file=file, type=file_type)
    return build_context(commit, change, k8s_change(kind, change_type, **kwargs))


class TestEngine:
    """Tests for Engine evaluation."""

    def test_default_rules(self):
        engine = Engine()
        assert engine.rule_count == 28
        assert engine.config.default == Severity.MEDIUM

    def test_first_match_wins(self):
        engine = Engine(
            config(
                ('kubernetes.kind == "Service"', Severity.HIGH),
                ('change.type == "modified"', Severity.LOW),
            )
        )
        assert engine.evaluate(context(kind="Service")) == Severity.HIGH
        assert engine.evaluate(context(kind="ConfigMap")) == Severity.LOW

    def test_default_when_nothing_matches(self):
        engine = Engine(config(('kubernetes.kind == "Secret"', Severity.CRITICAL), default=Severity.INFO))
        assert engine.evaluate_with_details(context()) == (Severity.INFO, "")

    def test_empty_config(self):
        engine = Engine(SeverityConfig())
        assert engine.rule_count == 0
        assert engine.evaluate(context()) == Severity.MEDIUM

    def test_details_name_the_rule(self):
        rule = 'kubernetes.kind.startsWith("Deploy")'
        engine = Engine(config((rule, Severity.HIGH)))
        assert engine.evaluate_with_details(context()) == (Severity.HIGH, rule)

    def test_erroring_rule_is_skipped(self):
        """A rule that fails at evaluation time does not stop later rules."""
        engine = Engine(
            config(
                ("kubernetes.missing_field == 1", Severity.CRITICAL),
                ('kubernetes.name == "web"', Severity.LOW),
            )
        )
        assert engine.evaluate(context()) == Severity.LOW

    def test_overflowing_rule_is_skipped(self):
        """Arithmetic that overflows counts as a failed rule."""
        engine = Engine(
            config(
                ("size([1] * 100000000000000000000) > 0", Severity.CRITICAL),
                ("true", Severity.HIGH),
            )
        )
        assert engine.evaluate(context()) == Severity.HIGH

    def test_bool_arithmetic_rule_is_skipped(self):
        engine = Engine(
            config(
                ("kubernetes.has_env_change + 1 == 1", Severity.CRITICAL),
                ("true", Severity.LOW),
            )
        )
        assert engine.evaluate(context()) == Severity.LOW

    def test_non_bool_rule_is_skipped(self):
        engine = Engine(
            config(
                ("kubernetes.replica_delta", Severity.CRITICAL),
                ('kubernetes.kind + "x"', Severity.CRITICAL),
            ),
        )
        assert engine.evaluate_with_details(context()) == (Severity.MEDIUM, "")

    def test_invalid_rule_fails_construction(self):
        with pytest.raises(RuleCompilationError, match="failed to compile rule 'foo == 1'") as exc:
            Engine(config(('change.type == "deleted"', Severity.HIGH), ("foo == 1", Severity.HIGH)))
        assert exc.value.expression == "foo == 1"
        assert exc.value.code == "RULE_COMPILE_ERROR"

    def test_python_syntax_is_rejected(self):
        with pytest.raises(RuleCompilationError, match="Unsupported token"):
            Engine(config(('change.type == "deleted" and True', Severity.HIGH)))

    def test_engine_is_reusable(self):
        engine = Engine(config(("kubernetes.replica_delta > 2", Severity.HIGH)))
        grow = context(scaling=Scaling(replicas=1, new_replicas=5))
        shrink = context(scaling=Scaling(replicas=5, new_replicas=1))
        assert engine.evaluate(grow) == Severity.HIGH
        assert engine.evaluate(shrink) == Severity.MEDIUM
        assert engine.evaluate(grow) == Severity.HIGH


class TestTestExpression:
    """Tests for Engine.test_expression."""

    def test_bool_results(self):
        engine = Engine(SeverityConfig())
        assert engine.test_expression('kubernetes.kind == "Deployment"', context()) is True
        assert engine.test_expression("kubernetes.replica_delta > 0", context()) is False

    def test_non_bool_result(self):
        with pytest.raises(RuleEvaluationError, match="expression must return bool, got int"):
            Engine(SeverityConfig()).test_expression("kubernetes.replica_delta + 1", context())

    def test_evaluation_error(self):
        with pytest.raises(RuleEvaluationError, match="no such key"):
            Engine(SeverityConfig()).test_expression("kubernetes.nope == 1", context())

    def test_compile_error(self):
        with pytest.raises(RuleCompilationError):
            Engine(SeverityConfig()).test_expression("unknown.field", context())


class TestDefaultRules:
    """The built-in rules applied to typical changes."""

    @pytest.fixture(scope="class")
    def engine(self):
        return Engine()

    def test_file_deletion_is_critical(self, engine):
        ctx = context(change_type=ChangeType.DELETED, file_type=FileChangeType.DELETED)
        assert engine.evaluate(ctx) == Severity.CRITICAL

    def test_secret_is_critical(self, engine):
        assert engine.evaluate(context(kind="Secret")) == Severity.CRITICAL

    @pytest.mark.parametrize("kind", ["ClusterRoleBinding", "Service", "Ingress", "ServiceAccount"])
    def test_access_and_network_are_high(self, engine, kind):
        assert engine.evaluate(context(kind=kind)) == Severity.HIGH

    def test_major_upgrade_is_high(self, engine):
        vc = VersionChange(old_version="1.9.0", new_version="2.0.0", change_type=VersionChangeType.MAJOR)
        severity, rule = engine.evaluate_with_details(context(version_changes=[vc]))
        assert severity == Severity.HIGH
        assert rule == 'kubernetes.version_upgrade == "major"'

    def test_large_scale_up_is_high(self, engine):
        ctx = context(scaling=Scaling(replicas=2, new_replicas=20))
        assert engine.evaluate_with_details(ctx) == (Severity.HIGH, "kubernetes.replica_delta > 10")

    def test_large_commit_is_critical(self, engine):
        commit = Commit(hash="abc", total_line_changes=600)
        assert engine.evaluate(context(commit=commit)) == Severity.CRITICAL

    def test_env_file(self, engine):
        change = CommitChange(file="deploy/.env", type=FileChangeType.MODIFIED)
        assert engine.evaluate(build_context(None, change, None)) == Severity.HIGH

    def test_modified_manifest_is_medium(self, engine):
        severity, rule = engine.evaluate_with_details(context(kind="ConfigMap"))
        assert severity == Severity.MEDIUM
        assert rule == 'file.is_config && change.type == "modified"'

    def test_added_manifest_uses_default(self, engine):
        ctx = context(kind="ConfigMap", change_type=ChangeType.ADDED, file_type=FileChangeType.ADDED)
        assert engine.evaluate_with_details(ctx) == (Severity.MEDIUM, "")
