"""Lazy exponential backoff sequences.

Each call to :func:`generate` owns a private ``random.Random`` so sequences
never share random state and a seeded spec always reproduces the same delays.
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from steadfast.domain.config.backoff import BackoffSpec

# Smallest delay a jittered step may produce; delays are never zero.
_MIN_DELAY = math.ulp(0.0)


def _clamp(delay: float, max_delay: float) -> float:
    return min(max(delay, _MIN_DELAY), max_delay)


def generate(spec: BackoffSpec) -> Iterator[float]:
    """Yield ``spec.count`` delays in seconds.

    The first delay is ``first_delay`` capped at ``max_delay``. Every later
    delay grows from the previous one by ``growth_factor``, is capped at
    ``max_delay``, perturbed by up to ``+/- jitter_fraction`` of itself and
    clamped back into ``(0, max_delay]``.

    Args:
        spec: Backoff configuration

    Yields:
        Delay before the next attempt, in seconds
    """
    rng = random.Random(spec.seed)
    delay = min(spec.first_delay, spec.max_delay)
    for step in range(spec.count):
        if step > 0:
            unjittered = min(delay * spec.growth_factor, spec.max_delay)
            spread = spec.jitter_fraction * (2.0 * rng.random() - 1.0)
            delay = _clamp(unjittered * (1.0 + spread), spec.max_delay)
        yield delay
