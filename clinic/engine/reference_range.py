"""
Reference Range Evaluator

Classifies a measured value against a lab test's [min, max] interval.
Unparseable values are a display concern, so they come back UNCLASSIFIED
rather than raising.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from .status import Classification

# leading number of a free-text entry such as "150 mg/dL" or "5.8 %"
LEADING_NUMBER = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def parse_number(value: Any) -> Optional[float]:
    """
    Return `value` as a finite float, or None when it is not numeric.

    Strings are read up to the end of their leading number, so a unit typed
    after the value is ignored.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = LEADING_NUMBER.match(value)
        if match is None:
            return None
        number = float(match.group(0))
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class ReferenceRange:
    min: Optional[float]
    max: Optional[float]

    @classmethod
    def from_lab_test(cls, lab_test) -> "ReferenceRange":
        return cls(min=lab_test.ref_min, max=lab_test.ref_max)

    @property
    def complete(self) -> bool:
        return self.min is not None and self.max is not None


def classify(value: Any, ref_range: ReferenceRange) -> Classification:
    """
    Classify `value` against `ref_range`. Both bounds are inclusive.

    Returns UNCLASSIFIED for missing or non-numeric values and for ranges
    with a missing bound.
    """
    number = parse_number(value)
    if number is None or not ref_range.complete:
        return Classification.UNCLASSIFIED
    if number < ref_range.min:
        return Classification.BELOW
    if number > ref_range.max:
        return Classification.ABOVE
    return Classification.WITHIN
