"""Safe AST-based evaluator for rule expressions."""

from __future__ import annotations

import ast
import operator
from typing import Any, Callable


def _truncating_div(a: Any, b: Any) -> Any:
    """Integer division truncates toward zero, as in CEL."""
    if isinstance(a, int) and isinstance(b, int) and not isinstance(a, bool):
        if b == 0:
            raise ZeroDivisionError("division by zero")
        q = abs(a) // abs(b)
        return q if (a >= 0) == (b >= 0) else -q
    return operator.truediv(a, b)


class CompiledExpression:
    """A parsed and validated expression tree, reusable across evaluations."""

    __slots__ = ("source", "tree", "names")

    def __init__(self, source: str, tree: ast.Expression, names: frozenset[str]) -> None:
        self.source = source
        self.tree = tree
        self.names = names

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


class SafeExpressionEvaluator:
    """Safe evaluator for rule expressions.

    Expressions are parsed with Python's ``ast`` module, checked against an
    allow-list of node types, and walked by hand. Nothing is passed to
    ``eval()``.

    Supported:
    - Comparisons: ==, !=, <, <=, >, >=, in, not in
    - Boolean: and, or, not
    - Arithmetic: +, -, *, /, %
    - Map field selection: ``change.type`` reads key ``type``
    - Subscript: ``labels["app"]``, ``items[0]``
    - Registered functions: ``size(x)``
    - Registered methods: ``name.startsWith("a")``
    - Macros: ``items.exists(x, x > 1)``, ``items.all(x, x > 1)``,
      ``has(obj.field)``
    - Literals: strings, numbers, booleans, None, lists, maps

    Example:
        evaluator = SafeExpressionEvaluator(functions={"size": len})
        compiled = evaluator.compile("size(change.fields) > 2 and change.type == 'modified'")
        evaluator.evaluate_compiled(compiled, {"change": {...}})
    """

    COMPARE_OPS: dict[type, Callable[[Any, Any], bool]] = {
        ast.Eq: operator.eq,
        ast.NotEq: operator.ne,
        ast.Lt: operator.lt,
        ast.LtE: operator.le,
        ast.Gt: operator.gt,
        ast.GtE: operator.ge,
        ast.In: lambda a, b: a in b,
        ast.NotIn: lambda a, b: a not in b,
    }

    BINARY_OPS: dict[type, Callable[[Any, Any], Any]] = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: operator.mul,
        ast.Div: _truncating_div,
        ast.Mod: operator.mod,
    }

    UNARY_OPS: dict[type, Callable[[Any], Any]] = {
        ast.Not: operator.not_,
        ast.USub: operator.neg,
        ast.UAdd: operator.pos,
    }

    ALLOWED_NODES: tuple[type, ...] = (
        ast.Expression,
        ast.BoolOp,
        ast.And,
        ast.Or,
        ast.UnaryOp,
        ast.BinOp,
        ast.Compare,
        ast.Call,
        ast.Attribute,
        ast.Subscript,
        ast.Name,
        ast.Constant,
        ast.List,
        ast.Tuple,
        ast.Dict,
        ast.Load,
        *COMPARE_OPS.keys(),
        *BINARY_OPS.keys(),
        *UNARY_OPS.keys(),
    )

    MACROS = frozenset({"exists", "all", "exists_one", "filter", "map"})

    def __init__(
        self,
        functions: dict[str, Callable[..., Any]] | None = None,
        methods: dict[str, Callable[..., Any]] | None = None,
        max_depth: int = 32,
    ) -> None:
        """Initialize the evaluator.

        Args:
            functions: Global functions callable by name
            methods: Receiver-style functions, called as ``fn(receiver, *args)``
            max_depth: Maximum AST depth to prevent stack overflow
        """
        self._functions = dict(functions or {})
        self._methods = dict(methods or {})
        self._max_depth = max_depth

    def compile(self, expression: str) -> CompiledExpression:
        """Parse and validate an expression.

        Raises:
            ValueError: If the expression is not valid or uses unsupported syntax
        """
        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise ValueError(f"Invalid expression syntax: {e.msg}") from e

        for node in ast.walk(tree):
            if not isinstance(node, self.ALLOWED_NODES):
                raise ValueError(f"Unsupported expression element: {type(node).__name__}")
            if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
                raise ValueError(f"Access to private attribute '{node.attr}' is not allowed")
            if isinstance(node, ast.Call) and node.keywords:
                raise ValueError("Keyword arguments are not supported")

        names = frozenset(self._free_names(tree.body, frozenset()))
        return CompiledExpression(expression, tree, names)

    def evaluate(self, expression: str, context: dict[str, Any]) -> Any:
        """Compile and evaluate an expression in one step."""
        return self.evaluate_compiled(self.compile(expression), context)

    def evaluate_compiled(self, compiled: CompiledExpression, context: dict[str, Any]) -> Any:
        """Evaluate a compiled expression against a context."""
        return self._eval_node(compiled.tree.body, context, depth=0)

    def _free_names(self, node: ast.AST, bound: frozenset[str]) -> set[str]:
        """Collect variable names the expression reads from the context."""
        if isinstance(node, ast.Name):
            if node.id in bound or node.id in self._functions:
                return set()
            return {node.id}

        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id == "has":
            names = set()
            for arg in node.args:
                names |= self._free_names(arg, bound)
            return names

        if isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute):
            if node.func.attr in self.MACROS:
                var, body = self._macro_parts(node)
                names = self._free_names(node.func.value, bound)
                return names | self._free_names(body, bound | {var})

        names: set[str] = set()
        for child in ast.iter_child_nodes(node):
            names |= self._free_names(child, bound)
        return names

    def _macro_parts(self, node: ast.Call) -> tuple[str, ast.AST]:
        macro = node.func.attr  # type: ignore[attr-defined]
        if len(node.args) != 2 or not isinstance(node.args[0], ast.Name):
            raise ValueError(f"{macro}() expects a variable name and an expression")
        return node.args[0].id, node.args[1]

    def _eval_node(self, node: ast.AST, context: dict[str, Any], depth: int) -> Any:
        if depth > self._max_depth:
            raise ValueError("Expression too deeply nested")

        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            if node.id in context:
                return context[node.id]
            if node.id in self._functions:
                return self._functions[node.id]
            raise ValueError(f"Unknown variable: {node.id}")

        # Field selection on maps
        if isinstance(node, ast.Attribute):
            value = self._eval_node(node.value, context, depth + 1)
            if isinstance(value, dict):
                if node.attr in value:
                    return value[node.attr]
                raise KeyError(f"no such key: {node.attr}")
            raise ValueError(f"Cannot select field '{node.attr}' on {type(value).__name__}")

        if isinstance(node, ast.Subscript):
            value = self._eval_node(node.value, context, depth + 1)
            key = self._eval_node(node.slice, context, depth + 1)
            return value[key]

        if isinstance(node, ast.Call):
            return self._eval_call(node, context, depth)

        if isinstance(node, ast.Compare):
            left = self._eval_node(node.left, context, depth + 1)
            for op, comparator in zip(node.ops, node.comparators):
                op_func = self.COMPARE_OPS[type(op)]
                right = self._eval_node(comparator, context, depth + 1)
                if not op_func(left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                for value in node.values:
                    if not self._eval_bool(value, context, depth + 1):
                        return False
                return True
            for value in node.values:
                if self._eval_bool(value, context, depth + 1):
                    return True
            return False

        if isinstance(node, ast.UnaryOp):
            operand = self._eval_node(node.operand, context, depth + 1)
            if isinstance(node.op, ast.Not) and not isinstance(operand, bool):
                raise TypeError(f"'!' expects a bool, got {type(operand).__name__}")
            if not isinstance(node.op, ast.Not) and isinstance(operand, bool):
                raise TypeError("arithmetic operators do not accept bool operands")
            return self.UNARY_OPS[type(node.op)](operand)

        if isinstance(node, ast.BinOp):
            left = self._eval_node(node.left, context, depth + 1)
            right = self._eval_node(node.right, context, depth + 1)
            if isinstance(left, bool) or isinstance(right, bool):
                raise TypeError("arithmetic operators do not accept bool operands")
            return self.BINARY_OPS[type(node.op)](left, right)

        if isinstance(node, (ast.List, ast.Tuple)):
            return [self._eval_node(elt, context, depth + 1) for elt in node.elts]

        if isinstance(node, ast.Dict):
            return {
                self._eval_node(k, context, depth + 1): self._eval_node(v, context, depth + 1)
                for k, v in zip(node.keys, node.values)
                if k is not None
            }

        raise ValueError(f"Unsupported expression type: {type(node).__name__}")

    def _eval_bool(self, node: ast.AST, context: dict[str, Any], depth: int) -> bool:
        value = self._eval_node(node, context, depth)
        if not isinstance(value, bool):
            raise TypeError(f"logical operator expects a bool, got {type(value).__name__}")
        return value

    def _eval_call(self, node: ast.Call, context: dict[str, Any], depth: int) -> Any:
        func = node.func

        if isinstance(func, ast.Name):
            if func.id == "has":
                return self._eval_has(node, context, depth)
            fn = self._functions.get(func.id)
            if fn is None:
                raise ValueError(f"Unknown function: {func.id}")
            args = [self._eval_node(arg, context, depth + 1) for arg in node.args]
            return fn(*args)

        if isinstance(func, ast.Attribute):
            if func.attr in self.MACROS:
                return self._eval_macro(node, context, depth)
            method = self._methods.get(func.attr)
            if method is None:
                raise ValueError(f"Unknown method: {func.attr}")
            receiver = self._eval_node(func.value, context, depth + 1)
            args = [self._eval_node(arg, context, depth + 1) for arg in node.args]
            return method(receiver, *args)

        raise ValueError("Cannot call non-callable")

    def _eval_has(self, node: ast.Call, context: dict[str, Any], depth: int) -> bool:
        if len(node.args) != 1 or not isinstance(node.args[0], ast.Attribute):
            raise ValueError("has() expects a field selection such as has(a.b)")
        target = node.args[0]
        value = self._eval_node(target.value, context, depth + 1)
        return isinstance(value, dict) and target.attr in value

    def _eval_macro(self, node: ast.Call, context: dict[str, Any], depth: int) -> Any:
        macro = node.func.attr  # type: ignore[attr-defined]
        var, body = self._macro_parts(node)
        target = self._eval_node(node.func.value, context, depth + 1)  # type: ignore[attr-defined]
        items = list(target.keys()) if isinstance(target, dict) else list(target)

        def run(item: Any) -> Any:
            return self._eval_node(body, {**context, var: item}, depth + 1)

        if macro == "map":
            return [run(item) for item in items]

        results = []
        for item in items:
            matched = run(item)
            if not isinstance(matched, bool):
                raise TypeError(f"{macro}() predicate must return a bool")
            results.append((item, matched))

        if macro == "exists":
            return any(m for _, m in results)
        if macro == "all":
            return all(m for _, m in results)
        if macro == "exists_one":
            return sum(1 for _, m in results if m) == 1
        return [item for item, m in results if m]
