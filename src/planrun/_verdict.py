from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class Verdict(str, Enum):
    NOT_SET = "not_set"
    PASS = "pass"
    INCONCLUSIVE = "inconclusive"
    FAIL = "fail"
    ABORTED = "aborted"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def is_worse_than(self, other: Verdict) -> bool:
        return self.rank > other.rank


# Severity order. Kept separate from the enum values so comparisons never
# depend on how the members happen to be declared or serialized.
_RANKS: dict[Verdict, int] = {
    Verdict.NOT_SET: 0,
    Verdict.PASS: 1,
    Verdict.INCONCLUSIVE: 2,
    Verdict.FAIL: 3,
    Verdict.ABORTED: 4,
    Verdict.ERROR: 5,
}


def worst(verdicts: Iterable[Verdict]) -> Verdict:
    """Return the most severe verdict, or NOT_SET for an empty iterable."""
    result = Verdict.NOT_SET
    for verdict in verdicts:
        if verdict.is_worse_than(result):
            result = verdict
    return result
