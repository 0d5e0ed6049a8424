"""Severity rule engine."""

from __future__ import annotations

from typing import Any

from manifest_audit.models.rules import SeverityConfig
from manifest_audit.models.severity import Severity
from manifest_audit.rules.cel import CelError, compile_cel, eval_cel
from manifest_audit.rules.config import default_severity_config
from manifest_audit.rules.context import DECLARED_VARIABLES
from manifest_audit.utils.errors import RuleCompilationError, RuleEvaluationError
from manifest_audit.utils.expression import CompiledExpression
from manifest_audit.utils.logging import get_logger

logger = get_logger(__name__)


class Engine:
    """Assigns a severity to a change by evaluating ordered CEL rules.

    Every rule is compiled up front; a config with any invalid rule fails
    construction as a whole. Rules are tried in config order and the first
    one that evaluates to ``true`` decides the severity. Rules that error at
    evaluation time are skipped.

    The compiled engine holds no mutable state and can be shared.

    Example:
        engine = Engine(load_severity_config("severity.yaml"))
        ctx = build_context(commit, change, k8s_change)
        severity, rule = engine.evaluate_with_details(ctx)
    """

    def __init__(self, config: SeverityConfig | None = None) -> None:
        """Compile a severity config.

        Args:
            config: Rules to compile, the built-in rules when None

        Raises:
            RuleCompilationError: If any rule fails to compile
        """
        self._config = config if config is not None else default_severity_config()
        self._programs: tuple[tuple[CompiledExpression, Severity], ...] = tuple(
            (_compile(rule.expression), rule.severity) for rule in self._config.rules
        )
        logger.debug("Compiled %d severity rules", len(self._programs))

    @property
    def config(self) -> SeverityConfig:
        return self._config

    @property
    def rule_count(self) -> int:
        return len(self._programs)

    def evaluate(self, context: dict[str, Any]) -> Severity:
        """Return the severity of the first matching rule, or the default."""
        return self.evaluate_with_details(context)[0]

    def evaluate_with_details(self, context: dict[str, Any]) -> tuple[Severity, str]:
        """Return the severity and the expression that produced it.

        The expression is empty when no rule matched.
        """
        for program, severity in self._programs:
            try:
                result = eval_cel(program, context)
            except CelError as e:
                logger.debug("Skipping rule %r: %s", program.source, e)
                continue
            if result is True:
                return severity, program.source
        return self._config.default, ""

    def test_expression(self, expression: str, context: dict[str, Any]) -> bool:
        """Compile and evaluate a single expression.

        Raises:
            RuleCompilationError: If the expression does not compile
            RuleEvaluationError: If evaluation fails or the result is not a bool
        """
        program = _compile(expression)
        try:
            result = eval_cel(program, context)
        except CelError as e:
            raise RuleEvaluationError(expression, str(e)) from e
        if not isinstance(result, bool):
            raise RuleEvaluationError(
                expression, f"expression must return bool, got {type(result).__name__}"
            )
        return result


def _compile(expression: str) -> CompiledExpression:
    try:
        return compile_cel(expression, DECLARED_VARIABLES)
    except CelError as e:
        raise RuleCompilationError(expression, str(e)) from e
