"""Check expression models - describe a boolean condition and its operands"""

import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

COMPARATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "is": operator.is_,
    "is not": operator.is_not,
    "in": lambda a, b: a in b,
    "not in": lambda a, b: a not in b,
}


def _got_section(lines: Tuple[str, ...]) -> str:
    if not lines:
        return ""
    return " Got:\n" + "\n".join(f"    {line}" for line in lines)


@dataclass(frozen=True)
class Operand:
    """One member of a comparison chain"""

    source_text: str
    value: Any
    is_literal: bool = False

    def render(self) -> str:
        return f"{self.source_text} => {self.value!r}"


@dataclass(frozen=True)
class Binding:
    """A free variable referenced by an expression and its runtime value"""

    name: str
    value: Any

    def render(self) -> str:
        return f"{self.name} => {self.value!r}"


@dataclass(frozen=True)
class Argument:
    """A call argument: its source text and evaluated value"""

    source_text: str
    value: Any = None


@dataclass(frozen=True)
class SimpleExpression:
    """A condition that is reported as a whole"""

    source_text: Optional[str]
    value: Any

    @property
    def holds(self) -> bool:
        return bool(self.value)

    def failure_message(self) -> str:
        if not self.source_text:
            return f"Precondition failed: condition evaluated to {self.value!r}."
        return f"{self.source_text} must hold, but evaluated to {self.value!r}."


@dataclass(frozen=True)
class ChainedComparison:
    """``a < b <= c ...``: true iff every adjacent pair compares true

    Invariant: ``len(operators) == len(operands) - 1``.
    """

    operands: Tuple[Operand, ...]
    operators: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.operands) < 2 or len(self.operators) != len(self.operands) - 1:
            raise ValueError("a comparison chain needs n operands and n - 1 operators")
        unknown = [op for op in self.operators if op not in COMPARATORS]
        if unknown:
            raise ValueError(f"Unsupported comparison operator(s): {', '.join(unknown)}")

    def failing_link(self) -> Optional[int]:
        """Index of the first adjacent pair whose comparison is false"""
        for index, symbol in enumerate(self.operators):
            left = self.operands[index].value
            right = self.operands[index + 1].value
            if not COMPARATORS[symbol](left, right):
                return index
        return None

    @property
    def holds(self) -> bool:
        return self.failing_link() is None

    def failure_message(self) -> str:
        index = self.failing_link()
        if index is None:
            index = 0
        left, right = self.operands[index], self.operands[index + 1]
        header = f"{left.source_text} {self.operators[index]} {right.source_text} must hold."
        reported = []
        for operand in (left, right):
            if operand.is_literal or operand.render() in reported:
                continue
            reported.append(operand.render())
        return header + _got_section(tuple(reported))


@dataclass(frozen=True)
class CallExpression:
    """``predicate(x, y, ...)`` evaluated for its truth"""

    callee_name: str
    source_text: str
    value: Any
    arguments: Tuple[Argument, ...] = ()
    bindings: Tuple[Binding, ...] = ()

    @property
    def holds(self) -> bool:
        return bool(self.value)

    def failure_message(self) -> str:
        header = f"{self.source_text} must hold."
        return header + _got_section(tuple(b.render() for b in self.bindings))


CheckExpression = Union[SimpleExpression, ChainedComparison, CallExpression]
