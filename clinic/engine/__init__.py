"""
Clinical Test Workflow Engine

State machines for examinations, assigned tests and test results, the
reference-range evaluator, the trend analyzer, and the coordinator that
ties them to persistence.

The coordinator and store depend on the SQLAlchemy model and are imported
from their modules directly:

    from clinic.engine.coordinator import WorkflowCoordinator
    from clinic.engine.store import WorkflowStore
"""
from .status import ExamStatus, TestStatus, ResultStatus, Classification, TrendSignal
from .reference_range import ReferenceRange, classify
from .trend import TrendReport, PriorResult, analyze
from .exceptions import (
    WorkflowError,
    ValidationError,
    InvalidTransition,
    AlreadyFinalized,
    TestFinalized,
    NotSubmitted,
    ResultLocked,
    ExaminationClosed,
    ConcurrentModification,
    NotFound,
)

__all__ = [
    "ExamStatus",
    "TestStatus",
    "ResultStatus",
    "Classification",
    "TrendSignal",
    "ReferenceRange",
    "classify",
    "TrendReport",
    "PriorResult",
    "analyze",
    "WorkflowError",
    "ValidationError",
    "InvalidTransition",
    "AlreadyFinalized",
    "TestFinalized",
    "NotSubmitted",
    "ResultLocked",
    "ExaminationClosed",
    "ConcurrentModification",
    "NotFound",
]
