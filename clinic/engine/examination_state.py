"""
Examination State Machine

SCHEDULED -> IN_PROGRESS -> COMPLETED, with CANCELLED reachable from
SCHEDULED or IN_PROGRESS. COMPLETED and CANCELLED are terminal.

The examination also gatekeeps what can be attached to it: lab tests
while it is open, prescriptions unless it was cancelled.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from clinic import model
from . import assigned_test_state
from .exceptions import ExaminationClosed, InvalidTransition, ValidationError, WorkflowError
from .status import ExamStatus, TestStatus, OPEN_EXAM_STATUSES

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    ExamStatus.SCHEDULED: frozenset({ExamStatus.IN_PROGRESS, ExamStatus.CANCELLED}),
    ExamStatus.IN_PROGRESS: frozenset({ExamStatus.COMPLETED, ExamStatus.CANCELLED}),
    ExamStatus.COMPLETED: frozenset(),
    ExamStatus.CANCELLED: frozenset(),
}


class CompletionPolicy(str, Enum):
    """
    STRICT   – an examination with PENDING/IN_PROGRESS tests cannot complete
    LENIENT  – completion is allowed; open tests are left as they are
    """
    STRICT = "strict"
    LENIENT = "lenient"


@dataclass
class CascadeFailure:
    assigned_test_id: int
    reason: str

    def to_dict(self) -> dict:
        return {"assigned_test_id": self.assigned_test_id, "reason": self.reason}


@dataclass
class StatusChange:
    """Outcome of an examination transition, including any cascade."""
    examination: "model.Examination"
    previous: ExamStatus
    cancelled_tests: List["model.AssignedTest"] = field(default_factory=list)
    failed: List[CascadeFailure] = field(default_factory=list)


@dataclass
class PrescriptionLine:
    """One requested item; `medication` is None when the id did not resolve."""
    medication_id: Optional[int]
    medication: Optional["model.Medication"]
    dosage: Optional[str]
    frequency: Optional[str]
    duration: Optional[str] = None


def current_status(examination) -> ExamStatus:
    return ExamStatus(examination.status)


def can_transition(current: ExamStatus, target: ExamStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(
    examination,
    target: ExamStatus,
    policy: CompletionPolicy = CompletionPolicy.STRICT,
) -> StatusChange:
    current = current_status(examination)
    target = ExamStatus(target)

    if not can_transition(current, target):
        raise InvalidTransition("examination", current.value, target.value)

    if target == ExamStatus.COMPLETED and policy == CompletionPolicy.STRICT:
        open_tests = [t.assigned_test_id for t in examination.assigned_tests if assigned_test_state.is_open(t)]
        if open_tests:
            raise InvalidTransition(
                "examination",
                current.value,
                target.value,
                message=f"examination {examination.examination_id} still has open tests: {open_tests}",
                details={"open_assigned_test_ids": open_tests},
            )

    examination.status = target.value
    examination.updated_at = datetime.now()
    change = StatusChange(examination=examination, previous=current)
    logger.info(f"examination {examination.examination_id}: {current.value} -> {target.value}")

    if target == ExamStatus.CANCELLED:
        _cascade_cancel(examination, change)

    return change


def _cascade_cancel(examination, change: StatusChange) -> None:
    # best effort: one test failing to cancel must not undo the examination cancellation
    for assigned_test in examination.assigned_tests:
        if not assigned_test_state.is_open(assigned_test):
            continue
        try:
            assigned_test_state.cancel(assigned_test)
            change.cancelled_tests.append(assigned_test)
        except WorkflowError as exc:
            logger.warning(
                f"examination {examination.examination_id}: could not cancel "
                f"assigned test {assigned_test.assigned_test_id}: {exc.message}"
            )
            change.failed.append(CascadeFailure(assigned_test.assigned_test_id, exc.message))


def assign_test(examination, lab_test):
    status = current_status(examination)
    if status not in OPEN_EXAM_STATUSES:
        raise ExaminationClosed(examination.examination_id, status.value, "assign tests")

    assigned = model.AssignedTest(
        lab_test=lab_test,
        lab_test_id=lab_test.lab_test_id,
        status=TestStatus.PENDING.value,
        assigned_date=datetime.now(),
    )
    examination.assigned_tests.append(assigned)
    examination.updated_at = datetime.now()
    return assigned


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def add_prescription(
    examination,
    diagnosis: Optional[str],
    items: Sequence[PrescriptionLine],
    doctor_id: Optional[int] = None,
    notes: Optional[str] = None,
):
    status = current_status(examination)
    if status == ExamStatus.CANCELLED:
        raise ExaminationClosed(examination.examination_id, status.value, "add prescriptions")

    missing = []
    if _blank(diagnosis):
        missing.append("diagnosis")
    if not items:
        missing.append("items")
    for index, line in enumerate(items):
        if line.medication is None:
            missing.append(f"items[{index}].medication")
        if _blank(line.dosage):
            missing.append(f"items[{index}].dosage")
        if _blank(line.frequency):
            missing.append(f"items[{index}].frequency")
    if missing:
        raise ValidationError(missing)

    prescription = model.Prescription(
        diagnosis=diagnosis.strip(),
        notes=notes,
        doctor_id=doctor_id,
        created_at=datetime.now(),
    )
    for position, line in enumerate(items):
        prescription.items.append(
            model.PrescriptionItem(
                medication=line.medication,
                medication_id=line.medication.medication_id,
                position=position,
                dosage=line.dosage.strip(),
                frequency=line.frequency.strip(),
                duration=None if _blank(line.duration) else line.duration.strip(),
            )
        )
    examination.prescriptions.append(prescription)
    examination.updated_at = datetime.now()
    logger.info(
        f"examination {examination.examination_id}: prescription with {len(items)} item(s) added"
    )
    return prescription


def remove_prescription(examination, prescription) -> None:
    status = current_status(examination)
    if status not in OPEN_EXAM_STATUSES:
        raise ExaminationClosed(examination.examination_id, status.value, "delete prescriptions")

    examination.prescriptions.remove(prescription)
    examination.updated_at = datetime.now()
