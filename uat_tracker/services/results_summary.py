"""Pass / partial / fail roll-up for a project's test cases.

The result percentage is the share of *applicable* test cases that passed:
Inapplicable cases are removed from the base, so adding or removing them
never moves the figure. Rows with an empty status (not yet executed) count
toward the total and the base but toward no outcome bucket.

The summary is derived on every read and never stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass

from uat_tracker.models.records import (
    STATUS_FAIL,
    STATUS_INAPPLICABLE,
    STATUS_NOT_RUN,
    STATUS_PARTIAL,
    STATUS_PASS,
)


@dataclass(frozen=True)
class ResultsSummary:
    total: int = 0
    pass_: int = 0
    partial: int = 0
    fail: int = 0
    inapplicable: int = 0
    not_run: int = 0
    result_percent: float = 0.0

    @property
    def denominator(self) -> int:
        return max(self.total - self.inapplicable, 0)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["pass"] = data.pop("pass_")
        data["denominator"] = self.denominator
        return data


def summarize(test_cases: Iterable) -> ResultsSummary:
    """Count outcomes by exact status literal and compute the result %."""
    counts = {
        STATUS_PASS: 0,
        STATUS_PARTIAL: 0,
        STATUS_FAIL: 0,
        STATUS_INAPPLICABLE: 0,
        STATUS_NOT_RUN: 0,
    }
    total = 0
    for tc in test_cases:
        total += 1
        status = tc.status
        if status in counts:
            counts[status] += 1

    denominator = max(total - counts[STATUS_INAPPLICABLE], 0)
    result_percent = (counts[STATUS_PASS] / denominator) * 100 if denominator > 0 else 0.0

    return ResultsSummary(
        total=total,
        pass_=counts[STATUS_PASS],
        partial=counts[STATUS_PARTIAL],
        fail=counts[STATUS_FAIL],
        inapplicable=counts[STATUS_INAPPLICABLE],
        not_run=counts[STATUS_NOT_RUN],
        result_percent=result_percent,
    )


def format_percent(value: float) -> str:
    """One decimal place, as shown on the dashboard and in reports."""
    return f"{value:.1f}%"
