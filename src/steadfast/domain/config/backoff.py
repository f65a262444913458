"""Backoff schedule configuration model."""

from __future__ import annotations

from typing import Iterator, Optional

from pydantic import Field
from pydantic.dataclasses import dataclass

from steadfast.infrastructure.backoff import generate


@dataclass(frozen=True)
class BackoffSpec:
    """Configuration of an exponential backoff schedule.

    Validation is performed at construction time so that a malformed schedule
    fails before any retry loop starts.

    Attributes:
        count: Number of delays in the schedule (0 = no retries)
        first_delay: First delay in seconds
        max_delay: Ceiling for every delay in seconds (may be ``inf``)
        growth_factor: Multiplier applied to the previous delay at each step
        jitter_fraction: Fraction of randomness mixed into each delay (0.0-1.0)
        seed: Seed for the schedule's private random generator
    """

    count: int = Field(1, ge=0)
    first_delay: float = Field(0.05, gt=0.0, allow_inf_nan=False)
    max_delay: float = Field(10.0, gt=0.0)
    growth_factor: float = Field(5.0, ge=0.0, allow_inf_nan=False)
    jitter_fraction: float = Field(0.1, ge=0.0, le=1.0)
    seed: Optional[int] = None

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[float]:
        return generate(self)
