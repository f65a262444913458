"""Retry policy configuration model."""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from steadfast.domain.config.backoff import BackoffSpec

Classifier = Callable[[Any, BaseException], Tuple[bool, BaseException]]


class RetryPolicy(BaseModel):
    """Configuration for re-invoking a fallible operation.

    The number of attempts is implicit: one initial attempt plus one per
    delay in the schedule.

    Attributes:
        delays: Backoff spec or any iterable of delays in seconds
        classify: ``(state, error) -> (should_retry, effective_error)``;
            ``None`` retries every error until the schedule runs out
        sleep: Blocking wait used between attempts
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )

    delays: Any = Field(default_factory=BackoffSpec)
    classify: Optional[Classifier] = Field(default=None, repr=False)
    sleep: Callable[[float], None] = Field(default=time.sleep, exclude=True, repr=False)

    @field_validator("delays")
    @classmethod
    def _check_iterable(cls, v: Any) -> Any:
        """Reject schedules that cannot be iterated."""
        if isinstance(v, (str, bytes)) or not hasattr(v, "__iter__"):
            raise ValueError("delays must be a BackoffSpec or an iterable of seconds")
        return v
