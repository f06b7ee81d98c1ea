"""Default duration estimator - production days suggested by job value"""

import math
from typing import Optional

from ...config import DURATION_VALUE_PER_DAY
from ...models import Job


def estimate_duration_from_value(
    value: Optional[float], value_per_day: float = DURATION_VALUE_PER_DAY
) -> int:
    """
    One day per ``value_per_day`` of job value, rounded down, never less than 1

    >>> estimate_duration_from_value(8000)
    4
    >>> estimate_duration_from_value(500)
    1
    """
    if not value or value <= 0 or value_per_day <= 0:
        return 1
    return max(1, math.floor(value / value_per_day))


def estimate_duration(job: Job, value_per_day: float = DURATION_VALUE_PER_DAY) -> int:
    """Suggested duration for ``job``; falls back to the contracted value when unestimated"""
    value = job.value_estimated or job.value_contracted
    return estimate_duration_from_value(value, value_per_day)
