"""Expression introspection for precondition checks.

Recovers the source of the condition handed to ``argcheck``/``check`` from
the caller's frame and breaks it down into a comparison chain, a call, or a
plain expression. Operands of comparison chains are re-evaluated in the
caller's namespace after the check has already failed, so only chains of
side-effect-free operands (names, constants, attribute and subscript
lookups over them) are decomposed.
"""

from __future__ import annotations

import ast
import inspect
import linecache
import logging
import sys
from types import FrameType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from steadfast.domain.models.expression import (
    Argument,
    Binding,
    CallExpression,
    ChainedComparison,
    CheckExpression,
    Operand,
    SimpleExpression,
)

logger = logging.getLogger(__name__)

CHECK_FUNCTIONS = frozenset({"argcheck", "check"})

_OPERATOR_SYMBOLS = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.Is: "is",
    ast.IsNot: "is not",
    ast.In: "in",
    ast.NotIn: "not in",
}

_MISSING = object()


class IntrospectionError(Exception):
    """The condition's source could not be recovered or decomposed."""


def _segment(lines: List[str], lineno: int, end_lineno: int, col: int, end_col: int) -> str:
    """Cut a source span; columns are UTF-8 byte offsets."""
    chunk = [line.encode("utf-8") for line in lines[lineno - 1:end_lineno]]
    if len(chunk) == 1:
        chunk[0] = chunk[0][col:end_col]
    else:
        chunk[0] = chunk[0][col:]
        chunk[-1] = chunk[-1][:end_col]
    return b"".join(chunk).decode("utf-8")


def _call_from_positions(frame: FrameType, lines: List[str]) -> Optional[Tuple[ast.Call, str]]:
    """Locate the executing call via instruction positions (CPython 3.11+)."""
    positions = getattr(frame.f_code, "co_positions", None)
    if positions is None:
        return None
    spans = list(positions())
    index = frame.f_lasti // 2
    if index >= len(spans):
        return None
    lineno, end_lineno, col, end_col = spans[index]
    if None in (lineno, end_lineno, col, end_col):
        return None
    source = _segment(lines, lineno, end_lineno, col, end_col)
    try:
        node = ast.parse(source, mode="eval").body
    except SyntaxError:
        return None
    if not isinstance(node, ast.Call):
        return None
    return node, source


def _callee_name(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _call_from_lines(frame: FrameType, lines: List[str]) -> Optional[Tuple[ast.Call, str]]:
    """Locate a check call spanning the frame's current line."""
    source = "".join(lines)
    try:
        tree = ast.parse(source)
    except SyntaxError:
        return None
    lineno = frame.f_lineno
    candidates = [
        node
        for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and _callee_name(node.func) in CHECK_FUNCTIONS
        and node.lineno <= lineno <= (node.end_lineno or node.lineno)
    ]
    if len(candidates) != 1:
        return None
    return candidates[0], source


def locate_condition(frame: FrameType) -> Tuple[ast.expr, str]:
    """Find the condition argument of the check call running in ``frame``.

    Args:
        frame: Frame that called ``argcheck``/``check``

    Returns:
        Tuple of (condition node, source the node's positions refer to)

    Raises:
        IntrospectionError: If the source is unavailable or ambiguous
    """
    lines = linecache.getlines(frame.f_code.co_filename, frame.f_globals)
    if not lines:
        raise IntrospectionError(f"No source available for {frame.f_code.co_filename}")

    located = None
    if sys.version_info >= (3, 11):
        located = _call_from_positions(frame, lines)
    if located is None:
        logger.debug(f"Searching {frame.f_code.co_filename}:{frame.f_lineno} for the check call")
        located = _call_from_lines(frame, lines)
    if located is None:
        raise IntrospectionError(f"Cannot find the check call at line {frame.f_lineno}")

    call, source = located
    if call.args:
        return call.args[0], source
    for keyword in call.keywords:
        if keyword.arg == "condition":
            return keyword.value, source
    raise IntrospectionError("The check call has no condition argument")


def source_of(node: ast.AST, source: str) -> str:
    """Render the source text of ``node`` on a single line."""
    text = ast.get_source_segment(source, node)
    if text is None or "\n" in text:
        return ast.unparse(node)
    return text


def _evaluate(node: ast.expr, globals_: Dict[str, Any], locals_: Mapping[str, Any]) -> Any:
    code = compile(ast.Expression(body=node), "<check>", "eval")
    return eval(code, globals_, locals_)


def _lookup(name: str, globals_: Dict[str, Any], locals_: Mapping[str, Any]) -> Any:
    if name in locals_:
        return locals_[name]
    return globals_.get(name, _MISSING)


def _is_literal(node: ast.expr) -> bool:
    if isinstance(node, ast.Constant):
        return True
    return isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)) and isinstance(
        node.operand, ast.Constant
    )


def _is_reportable(value: Any) -> bool:
    return not (inspect.ismodule(value) or inspect.isclass(value) or inspect.isroutine(value))


def _is_pure(node: Optional[ast.AST]) -> bool:
    """Check whether evaluating ``node`` again cannot change program state."""
    if node is None or isinstance(node, (ast.Name, ast.Constant)):
        return True
    if _is_literal(node):
        return True
    if isinstance(node, ast.Attribute):
        return _is_pure(node.value)
    if isinstance(node, ast.Subscript):
        return _is_pure(node.value) and _is_pure(node.slice)
    if isinstance(node, ast.Slice):
        return all(_is_pure(part) for part in (node.lower, node.upper, node.step))
    if isinstance(node, ast.Tuple):
        return all(_is_pure(element) for element in node.elts)
    return False


def _is_decomposable(node: ast.Compare) -> bool:
    return all(_is_pure(member) for member in [node.left] + list(node.comparators))


def _describe_comparison(
    node: ast.Compare, source: str, globals_: Dict[str, Any], locals_: Mapping[str, Any]
) -> ChainedComparison:
    members = [node.left] + list(node.comparators)
    symbols = [_OPERATOR_SYMBOLS[type(op)] for op in node.ops]
    operands = [Operand(source_of(members[0], source), _evaluate(members[0], globals_, locals_), _is_literal(members[0]))]
    for index, symbol in enumerate(symbols):
        member = members[index + 1]
        operands.append(Operand(source_of(member, source), _evaluate(member, globals_, locals_), _is_literal(member)))
        partial = ChainedComparison(tuple(operands), tuple(symbols[: index + 1]))
        if partial.failing_link() is not None:
            return partial
    return ChainedComparison(tuple(operands), tuple(symbols))


def _describe_call(
    node: ast.Call, source: str, value: Any, globals_: Dict[str, Any], locals_: Mapping[str, Any]
) -> CallExpression:
    arguments = []
    for arg in node.args:
        bound = _lookup(arg.id, globals_, locals_) if isinstance(arg, ast.Name) else None
        arguments.append(Argument(source_of(arg, source), None if bound is _MISSING else bound))
    for keyword in node.keywords:
        text = source_of(keyword, source)
        bound = _lookup(keyword.value.id, globals_, locals_) if isinstance(keyword.value, ast.Name) else None
        arguments.append(Argument(text, None if bound is _MISSING else bound))

    callees = {id(sub.func) for sub in ast.walk(node) if isinstance(sub, ast.Call)}
    bindings: List[Binding] = []
    seen = set()
    for arg in list(node.args) + [k.value for k in node.keywords]:
        for sub in ast.walk(arg):
            if not isinstance(sub, ast.Name) or id(sub) in callees or sub.id in seen:
                continue
            bound = _lookup(sub.id, globals_, locals_)
            if bound is _MISSING or not _is_reportable(bound):
                continue
            seen.add(sub.id)
            bindings.append(Binding(sub.id, bound))

    return CallExpression(
        callee_name=source_of(node.func, source),
        source_text=source_of(node, source),
        value=value,
        arguments=tuple(arguments),
        bindings=tuple(bindings),
    )


def describe(
    node: ast.expr,
    source: str,
    value: Any,
    globals_: Dict[str, Any],
    locals_: Optional[Mapping[str, Any]] = None,
) -> CheckExpression:
    """Build a check expression for ``node``.

    Args:
        node: Condition expression node
        source: Source text that ``node``'s positions refer to
        value: The condition's value as the caller computed it
        globals_: Caller globals
        locals_: Caller locals (defaults to ``globals_``)

    Returns:
        ChainedComparison for comparisons of side-effect-free operands,
        CallExpression for calls of a named callee, SimpleExpression for
        anything else
    """
    if locals_ is None:
        locals_ = globals_
    if isinstance(node, ast.Compare) and _is_decomposable(node):
        return _describe_comparison(node, source, globals_, locals_)
    if isinstance(node, ast.Call) and isinstance(node.func, (ast.Name, ast.Attribute)):
        return _describe_call(node, source, value, globals_, locals_)
    return SimpleExpression(source_of(node, source), value)


def describe_source(
    source: str,
    globals_: Dict[str, Any],
    locals_: Optional[Mapping[str, Any]] = None,
) -> CheckExpression:
    """Parse and evaluate ``source`` and describe it.

    Lets callers build a check expression explicitly, e.g.
    ``argcheck(describe_source("lo <= x < hi", globals(), locals()))``.
    """
    if locals_ is None:
        locals_ = globals_
    text = source.strip()
    node = ast.parse(text, mode="eval").body
    if isinstance(node, ast.Compare) and _is_decomposable(node):
        # chains evaluate their own operands
        return _describe_comparison(node, text, globals_, locals_)
    return describe(node, text, _evaluate(node, globals_, locals_), globals_, locals_)
