"""
Status vocabularies shared by the model and the state machines.

Values are stored as plain strings on the model rows.
"""
from enum import Enum


class ExamStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TestStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ResultStatus(str, Enum):
    """
    DRAFT is the single pre-submission state. Older clients send PENDING
    for the same thing; `parse` folds it into DRAFT.
    """
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    REVIEWED = "REVIEWED"

    @classmethod
    def parse(cls, value) -> "ResultStatus":
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if text == "PENDING":
            return cls.DRAFT
        return cls(text)


class Classification(str, Enum):
    BELOW = "BELOW"
    WITHIN = "WITHIN"
    ABOVE = "ABOVE"
    UNCLASSIFIED = "UNCLASSIFIED"


class TrendSignal(str, Enum):
    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"


OPEN_EXAM_STATUSES = frozenset({ExamStatus.SCHEDULED, ExamStatus.IN_PROGRESS})
OPEN_TEST_STATUSES = frozenset({TestStatus.PENDING, TestStatus.IN_PROGRESS})
