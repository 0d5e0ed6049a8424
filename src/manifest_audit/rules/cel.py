"""CEL (Common Expression Language) to Python translator and evaluator."""

from __future__ import annotations

import re
from typing import Any, Iterable, Iterator

from manifest_audit.utils.expression import CompiledExpression, SafeExpressionEvaluator


class CelError(Exception):
    """Error during CEL compilation or evaluation."""

    pass


# Python spellings that are not CEL. Accepting them would let rules depend on
# the translation rather than on the language.
_PYTHON_ONLY = re.compile(
    r"\b(and|or|not|is|if|else|for|lambda|None|True|False|yield|await)\b"
)

_LITERALS = {"true": "True", "false": "False", "null": "None"}


def cel_matches(val: Any, pattern: str) -> bool:
    """CEL matches() function - check if value matches regex pattern."""
    if not isinstance(val, str):
        raise CelError(f"matches() expects a string, got {type(val).__name__}")
    try:
        return re.search(pattern, val) is not None
    except re.error as e:
        raise CelError(f"Invalid regex: {pattern!r}: {e}") from e


def cel_size(x: Any) -> int:
    """CEL size() function - length of a string, list or map."""
    if isinstance(x, (str, list, tuple, dict)):
        return len(x)
    raise CelError(f"size() not defined for {type(x).__name__}")


def cel_int(x: Any) -> int:
    """CEL int() conversion."""
    if isinstance(x, bool):
        raise CelError("int() not defined for bool")
    try:
        return int(x)
    except (TypeError, ValueError) as e:
        raise CelError(f"int() conversion failed: {e}") from e


def cel_string(x: Any) -> str:
    """CEL string() conversion."""
    if isinstance(x, bool):
        return "true" if x else "false"
    if x is None:
        return "null"
    return str(x)


def _string_method(name: str, fn: Any) -> Any:
    def method(receiver: Any, arg: Any) -> bool:
        if not isinstance(receiver, str) or not isinstance(arg, str):
            raise CelError(f"{name}() expects string arguments")
        return fn(receiver, arg)

    return method


def _case_method(name: str, fn: Any) -> Any:
    def method(receiver: Any) -> str:
        if not isinstance(receiver, str):
            raise CelError(f"{name}() expects a string receiver")
        return fn(receiver)

    return method


CEL_FUNCTIONS = {
    "size": cel_size,
    "int": cel_int,
    "double": float,
    "string": cel_string,
    "matches": cel_matches,
}

CEL_METHODS = {
    "size": cel_size,
    "matches": cel_matches,
    "startsWith": _string_method("startsWith", str.startswith),
    "endsWith": _string_method("endsWith", str.endswith),
    "contains": _string_method("contains", lambda s, sub: sub in s),
    "lowerAscii": _case_method("lowerAscii", str.lower),
    "upperAscii": _case_method("upperAscii", str.upper),
}

_evaluator = SafeExpressionEvaluator(functions=CEL_FUNCTIONS, methods=CEL_METHODS)


def _segments(expr: str) -> Iterator[tuple[bool, str]]:
    """Yield (is_string_literal, text) pieces of an expression."""
    start = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if ch in "'\"":
            if i > start:
                yield False, expr[start:i]
            j = i + 1
            while j < len(expr) and expr[j] != ch:
                j += 2 if expr[j] == "\\" else 1
            if j >= len(expr):
                raise CelError("Unterminated string literal")
            yield True, expr[i : j + 1]
            start = i = j + 1
            continue
        i += 1
    if start < len(expr):
        yield False, expr[start:]


def _replace_not(code: str) -> str:
    """Replace CEL '!' with Python 'not', but keep '!='."""
    out = []
    for i, ch in enumerate(code):
        if ch == "!" and (i + 1 >= len(code) or code[i + 1] != "="):
            out.append(" not ")
        else:
            out.append(ch)
    return "".join(out)


def _translate_code(code: str) -> str:
    m = _PYTHON_ONLY.search(code)
    if m:
        raise CelError(f"Unsupported token: {m.group(1)!r}")
    if "?" in code:
        raise CelError("conditional operator '? :' is not supported")
    code = code.replace("&&", " and ").replace("||", " or ")
    code = re.sub(r"\b(true|false|null)\b", lambda m: _LITERALS[m.group(1)], code)
    return _replace_not(code)


def cel_to_py(expr: str) -> str:
    """
    Convert a CEL expression to Python source for the safe evaluator.

    Handles:
    - && -> and, || -> or
    - ! -> not (but not !=)
    - true/false/null -> True/False/None
    String literals pass through untouched. Methods (``x.startsWith(s)``),
    macros (``x.exists(v, p)``) and ``has(a.b)`` keep their CEL shape and
    are resolved by the evaluator.
    """
    if not isinstance(expr, str):
        raise CelError("CEL expression must be a string")
    return "".join(
        text if literal else _translate_code(text) for literal, text in _segments(expr.strip())
    )


def compile_cel(expr: str, declarations: Iterable[str]) -> CompiledExpression:
    """Translate and compile a CEL expression.

    Args:
        expr: CEL expression string
        declarations: Top-level variable names the expression may read

    Raises:
        CelError: On syntax errors, unsupported tokens or undeclared identifiers
    """
    if not expr or not expr.strip():
        raise CelError("empty expression")
    py = cel_to_py(expr)
    try:
        compiled = _evaluator.compile(py)
    except ValueError as e:
        raise CelError(str(e)) from e

    undeclared = sorted(compiled.names - set(declarations))
    if undeclared:
        raise CelError(f"undeclared reference to {', '.join(repr(n) for n in undeclared)}")
    return CompiledExpression(expr, compiled.tree, compiled.names)


def eval_cel(compiled: CompiledExpression, context: dict[str, Any]) -> Any:
    """
    Evaluate a compiled CEL expression with the given context.

    Returns the raw result; callers decide what a non-bool means.

    Raises:
        CelError: If evaluation fails
    """
    try:
        return _evaluator.evaluate_compiled(compiled, context)
    except CelError:
        raise
    except (
        ValueError,
        TypeError,
        KeyError,
        IndexError,
        ZeroDivisionError,
        OverflowError,
        MemoryError,
        RecursionError,
    ) as e:
        raise CelError(f"{type(e).__name__}: {e}") from e
