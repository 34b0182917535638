"""
Workflow Coordinator

The only entry points the API layer calls. Each operation loads what it
needs through the store, applies the state-machine rules, and commits one
unit of work. Nothing is kept between calls.

Usage:
    from clinic.engine.coordinator import WorkflowCoordinator, WorkflowPolicy
    from clinic.engine.store import WorkflowStore

    coordinator = WorkflowCoordinator(WorkflowStore(db), WorkflowPolicy.from_settings(get_settings()))
    outcome = coordinator.assign_tests(actor, examination_id=1, lab_test_ids=[3, 4])
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from clinic import model
from . import assigned_test_state, examination_state, result_state
from .context import Actor
from .examination_state import CompletionPolicy, PrescriptionLine, StatusChange
from .exceptions import ExaminationClosed, InvalidTransition, NotFound, TestFinalized, ValidationError, WorkflowError
from .reference_range import ReferenceRange, classify
from .status import (
    Classification,
    ExamStatus,
    ResultStatus,
    TestStatus,
    OPEN_EXAM_STATUSES,
)
from .store import WorkflowStore
from .trend import DEFAULT_EPSILON, DEFAULT_HISTORY_SIZE, TrendReport, analyze

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowPolicy:
    completion: CompletionPolicy = CompletionPolicy.STRICT
    trend_history_size: int = DEFAULT_HISTORY_SIZE
    trend_epsilon: float = DEFAULT_EPSILON

    @classmethod
    def from_settings(cls, settings) -> "WorkflowPolicy":
        return cls(
            completion=CompletionPolicy(settings.completion_policy),
            trend_history_size=settings.trend_history_size,
            trend_epsilon=settings.trend_epsilon,
        )


@dataclass
class AssignmentFailure:
    lab_test_id: int
    reason: str

    def to_dict(self) -> dict:
        return {"lab_test_id": self.lab_test_id, "reason": self.reason}


@dataclass
class AssignmentOutcome:
    created: List["model.AssignedTest"] = field(default_factory=list)
    failed: List[AssignmentFailure] = field(default_factory=list)


@dataclass
class ResultPayload:
    result_data: Optional[str] = None
    notes: Optional[str] = None
    result_date: Optional[datetime] = None
    status: Optional[str] = None
    final: bool = True
    technician_id: Optional[int] = None


@dataclass
class PrescriptionItemInput:
    medication_id: Optional[int]
    dosage: Optional[str]
    frequency: Optional[str]
    duration: Optional[str] = None


@dataclass
class ResultEntry:
    """A stored result together with its clinical interpretation."""
    result: "model.TestResult"
    assigned_test: "model.AssignedTest"
    classification: Classification
    trend: TrendReport


class WorkflowCoordinator:

    def __init__(self, store: WorkflowStore, policy: Optional[WorkflowPolicy] = None):
        self.store = store
        self.policy = policy or WorkflowPolicy()

    @contextmanager
    def _unit_of_work(self, operation: str, actor: Optional[Actor] = None):
        try:
            yield
            self.store.commit()
        except WorkflowError as exc:
            self.store.rollback()
            who = f" by user {actor.user_id}" if actor else ""
            logger.warning(f"{operation}{who} rejected: [{exc.code}] {exc.message}")
            raise

    # ── examinations ──────────────────────────────────────────────────────
    def assign_tests(self, actor: Actor, examination_id: int, lab_test_ids: Sequence[int]) -> AssignmentOutcome:
        outcome = AssignmentOutcome()
        with self._unit_of_work("assign_tests", actor):
            if not lab_test_ids:
                raise ValidationError(["lab_test_ids"])

            examination = self.store.examination(examination_id)
            status = examination_state.current_status(examination)
            if status not in OPEN_EXAM_STATUSES:
                raise ExaminationClosed(examination.examination_id, status.value, "assign tests")

            for lab_test_id in lab_test_ids:
                lab_test = self.store.lab_test(lab_test_id)
                if lab_test is None:
                    outcome.failed.append(AssignmentFailure(lab_test_id, f"lab test {lab_test_id} not found"))
                    continue
                try:
                    outcome.created.append(examination_state.assign_test(examination, lab_test))
                except WorkflowError as exc:
                    outcome.failed.append(AssignmentFailure(lab_test_id, exc.message))

        logger.info(
            f"examination {examination_id}: {len(outcome.created)} test(s) assigned, "
            f"{len(outcome.failed)} failed"
        )
        return outcome

    def update_examination_status(self, actor: Actor, examination_id: int, status) -> StatusChange:
        with self._unit_of_work("update_examination_status", actor):
            try:
                target = ExamStatus(status)
            except ValueError:
                raise ValidationError(["status"], message=f"unknown examination status: {status}")

            examination = self.store.examination(examination_id)
            change = examination_state.transition(examination, target, self.policy.completion)
        return change

    def create_prescription(
        self,
        actor: Actor,
        examination_id: int,
        diagnosis: Optional[str],
        items: Sequence[PrescriptionItemInput],
        notes: Optional[str] = None,
    ) -> model.Prescription:
        with self._unit_of_work("create_prescription", actor):
            examination = self.store.examination(examination_id)
            lines = [
                PrescriptionLine(
                    medication_id=item.medication_id,
                    medication=self.store.medication(item.medication_id) if item.medication_id is not None else None,
                    dosage=item.dosage,
                    frequency=item.frequency,
                    duration=item.duration,
                )
                for item in items
            ]
            doctor_id = actor.user_id if actor.is_doctor else examination.doctor_id
            prescription = examination_state.add_prescription(
                examination, diagnosis, lines, doctor_id=doctor_id, notes=notes
            )
        return prescription

    def delete_prescription(self, actor: Actor, prescription_id: int) -> None:
        with self._unit_of_work("delete_prescription", actor):
            prescription = self.store.prescription(prescription_id)
            examination_state.remove_prescription(prescription.examination, prescription)
        logger.info(f"prescription {prescription_id} deleted by user {actor.user_id}")

    # ── assigned tests ────────────────────────────────────────────────────
    def cancel_assigned_test(self, actor: Actor, assigned_test_id: int) -> model.AssignedTest:
        with self._unit_of_work("cancel_assigned_test", actor):
            assigned = self.store.assigned_test(assigned_test_id)
            assigned_test_state.cancel(assigned)
        return assigned

    def start_assigned_test(self, actor: Actor, assigned_test_id: int) -> model.AssignedTest:
        with self._unit_of_work("start_assigned_test", actor):
            assigned = self.store.assigned_test(assigned_test_id)
            assigned_test_state.start(assigned)
            if actor.is_technician and assigned.technician_id is None:
                assigned.technician_id = actor.user_id
        return assigned

    # ── results ───────────────────────────────────────────────────────────
    def enter_result(self, actor: Actor, assigned_test_id: int, payload: ResultPayload) -> ResultEntry:
        """
        Create or correct the result of an assigned test.

        With no result yet, a DRAFT result is created, advanced to the
        requested status and recorded against the test. With an existing
        result, the provided fields are edited in place and the status is
        advanced; an IN_PROGRESS test completes once its result is final.
        """
        with self._unit_of_work("enter_result", actor):
            try:
                target = ResultStatus.parse(payload.status) if payload.status else None
            except ValueError:
                raise ValidationError(["status"], message=f"unknown result status: {payload.status}")

            assigned = self.store.assigned_test(assigned_test_id)
            technician_id = payload.technician_id
            if technician_id is None and actor.is_technician:
                technician_id = actor.user_id

            fields = {
                "result_data": payload.result_data,
                "comment": payload.notes,
                "result_date": payload.result_date,
                "technician_id": technician_id,
            }
            fields = {name: value for name, value in fields.items() if value is not None}

            if assigned.result is None:
                # an entry without a date is dated when it is recorded
                fields.setdefault("result_date", datetime.now())
                result = model.TestResult(status=ResultStatus.DRAFT.value)
                result_state.update(result, fields)
                self._advance(result, target or ResultStatus.DRAFT, actor)
                assigned_test_state.record_result(assigned, result, final=payload.final)
            else:
                test_status = assigned_test_state.current_status(assigned)
                if test_status == TestStatus.CANCELLED:
                    raise TestFinalized(assigned.assigned_test_id, test_status.value)

                result = assigned.result
                result_state.update(result, fields)
                if target is not None:
                    self._advance(result, target, actor)
                finished = payload.final or result_state.current_status(result) == ResultStatus.REVIEWED
                if finished and assigned_test_state.is_open(assigned):
                    assigned_test_state.complete(assigned)

        return self._interpret(assigned, result)

    def review_result(self, actor: Actor, result_id: int) -> model.TestResult:
        with self._unit_of_work("review_result", actor):
            result = self.store.test_result(result_id)
            result_state.review(result, actor.user_id)
            assigned = result.assigned_test
            if assigned_test_state.is_open(assigned):
                assigned_test_state.complete(assigned)
        return result

    def interpret_result(self, actor: Actor, assigned_test_id: int) -> ResultEntry:
        assigned = self.store.assigned_test(assigned_test_id)
        logger.debug(f"interpretation of assigned test {assigned_test_id} requested by user {actor.user_id}")
        if assigned.result is None:
            raise NotFound("test_result", f"for assigned test {assigned_test_id}")
        return self._interpret(assigned, assigned.result)

    def _advance(self, result, target: ResultStatus, actor: Actor) -> None:
        current = result_state.current_status(result)
        if current == target:
            return
        if target == ResultStatus.DRAFT:
            raise InvalidTransition("test_result", current.value, target.value)
        if current == ResultStatus.DRAFT:
            result_state.submit(result)
        if target == ResultStatus.REVIEWED:
            result_state.review(result, actor.user_id)

    def _interpret(self, assigned, result) -> ResultEntry:
        lab_test = assigned.lab_test
        classification = classify(result.result_data, ReferenceRange.from_lab_test(lab_test))
        priors = self.store.prior_results(
            patient_id=assigned.examination.patient_id,
            lab_test_id=assigned.lab_test_id,
            exclude_assigned_test_id=assigned.assigned_test_id,
            limit=self.policy.trend_history_size,
        )
        trend = analyze(
            result.result_data,
            priors,
            epsilon=self.policy.trend_epsilon,
            history_size=self.policy.trend_history_size,
        )
        if classification in (Classification.BELOW, Classification.ABOVE):
            logger.info(
                f"assigned test {assigned.assigned_test_id}: {lab_test.name} value "
                f"{result.result_data} is {classification.value} reference range"
            )
        return ResultEntry(result=result, assigned_test=assigned, classification=classification, trend=trend)
