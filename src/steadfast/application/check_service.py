"""Precondition checks with descriptive failure messages.

``argcheck`` guards function arguments and raises ``ArgumentError`` by
default; ``check`` guards any other invariant and raises ``RuntimeError``.
Both accept an optional error (a message string, an exception class or a
ready-made exception instance) and an optional custom message.
"""

from __future__ import annotations

import inspect
import logging
from types import FrameType
from typing import Any, Optional, Type, Union

from steadfast.domain.errors import ArgumentError
from steadfast.domain.models.expression import (
    CallExpression,
    ChainedComparison,
    CheckExpression,
    SimpleExpression,
)
from steadfast.infrastructure.introspection import describe, locate_condition, source_of

logger = logging.getLogger(__name__)

ErrorSpec = Union[None, str, BaseException, Type[BaseException]]

_EXPRESSION_TYPES = (SimpleExpression, ChainedComparison, CallExpression)


def argcheck(condition: Any, error: ErrorSpec = None, message: Optional[str] = None) -> None:
    """Raise unless ``condition`` holds.

    Args:
        condition: Value to test, or a CheckExpression built by the caller
        error: Message string, exception class or exception instance
        message: Custom message used instead of the generated one

    Raises:
        ArgumentError: By default, with a message describing the condition
    """
    if _holds(condition):
        return
    frame = inspect.currentframe()
    try:
        raise build_error(condition, error, message, ArgumentError, frame.f_back if frame else None)
    finally:
        del frame


def check(condition: Any, error: ErrorSpec = None, message: Optional[str] = None) -> None:
    """Like :func:`argcheck`, but raises ``RuntimeError`` by default."""
    if _holds(condition):
        return
    frame = inspect.currentframe()
    try:
        raise build_error(condition, error, message, RuntimeError, frame.f_back if frame else None)
    finally:
        del frame


def _holds(condition: Any) -> bool:
    if isinstance(condition, _EXPRESSION_TYPES):
        return condition.holds
    return bool(condition)


def accepts_message(kind: Type[BaseException]) -> bool:
    """Check whether ``kind`` can be constructed from a single message."""
    try:
        signature = inspect.signature(kind)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind("message")
    except TypeError:
        return False
    return True


def build_error(
    condition: Any,
    error: ErrorSpec,
    message: Optional[str],
    default_kind: Type[BaseException],
    frame: Optional[FrameType] = None,
) -> BaseException:
    """Construct the exception for a failed check.

    Args:
        condition: The failed condition
        error: Caller's error spec (see :func:`argcheck`)
        message: Caller's custom message
        default_kind: Kind used when ``error`` names none
        frame: Caller frame used to recover the condition's source

    Returns:
        Exception instance to raise
    """
    if isinstance(error, BaseException):
        return error
    if isinstance(error, str):
        error, message = None, error
    kind = error or default_kind
    if not accepts_message(kind):
        return kind()
    if message is None:
        message = describe_failure(condition, frame)
    return kind(message)


def describe_failure(condition: Any, frame: Optional[FrameType] = None) -> str:
    """Render the failure message for ``condition``.

    Falls back to a plain message when the condition cannot be recovered
    or decomposed.
    """
    if isinstance(condition, _EXPRESSION_TYPES):
        return condition.failure_message()
    if frame is None:
        return SimpleExpression(None, condition).failure_message()

    source_text = None
    try:
        node, source = locate_condition(frame)
        source_text = source_of(node, source)
        expression: CheckExpression = describe(node, source, condition, frame.f_globals, frame.f_locals)
        if expression.holds:
            logger.debug(f"Re-evaluated condition {source_text!r} holds, reporting it as a whole")
            expression = SimpleExpression(source_text, condition)
        return expression.failure_message()
    except Exception as e:
        logger.debug(f"Could not decompose failed condition: {e}")
        return SimpleExpression(source_text, condition).failure_message()
