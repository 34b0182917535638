"""
Persistence collaborator for the workflow coordinator.

Wraps one SQLAlchemy session per unit of work. Versioned rows turn a write
against stale state into ConcurrentModification.
"""
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from clinic import model
from .exceptions import ConcurrentModification, NotFound
from .status import TestStatus
from .trend import PriorResult

logger = logging.getLogger(__name__)


class WorkflowStore:

    def __init__(self, db: Session):
        self.db = db

    # ── loading ───────────────────────────────────────────────────────────
    def _load(self, entity_cls, entity_id: int):
        # populate_existing so preconditions are checked against the stored row,
        # not whatever an earlier call left in the identity map
        return self.db.get(entity_cls, entity_id, populate_existing=True)

    def _require(self, entity_cls, entity_id: int, name: str):
        entity = self._load(entity_cls, entity_id)
        if entity is None:
            raise NotFound(name, entity_id)
        return entity

    def examination(self, examination_id: int) -> model.Examination:
        return self._require(model.Examination, examination_id, "examination")

    def assigned_test(self, assigned_test_id: int) -> model.AssignedTest:
        return self._require(model.AssignedTest, assigned_test_id, "assigned_test")

    def test_result(self, result_id: int) -> model.TestResult:
        return self._require(model.TestResult, result_id, "test_result")

    def prescription(self, prescription_id: int) -> model.Prescription:
        return self._require(model.Prescription, prescription_id, "prescription")

    def lab_test(self, lab_test_id: int) -> Optional[model.LabTest]:
        return self._load(model.LabTest, lab_test_id)

    def medication(self, medication_id: int) -> Optional[model.Medication]:
        return self._load(model.Medication, medication_id)

    def prior_results(
        self,
        patient_id: int,
        lab_test_id: int,
        exclude_assigned_test_id: int,
        limit: int,
    ) -> List[PriorResult]:
        """
        Completed results for the same patient and lab test, newest first.
        Rows stored without a result date are placed by when they were entered.
        """
        stmt = (
            select(model.TestResult)
            .join(model.AssignedTest, model.TestResult.assigned_test_id == model.AssignedTest.assigned_test_id)
            .join(model.Examination, model.AssignedTest.examination_id == model.Examination.examination_id)
            .where(
                model.Examination.patient_id == patient_id,
                model.AssignedTest.lab_test_id == lab_test_id,
                model.AssignedTest.assigned_test_id != exclude_assigned_test_id,
                model.AssignedTest.status == TestStatus.COMPLETED.value,
            )
            .order_by(
                func.coalesce(model.TestResult.result_date, model.TestResult.created_at).desc(),
                model.TestResult.result_id.desc(),
            )
            .limit(limit)
        )
        return [
            PriorResult(
                result_id=r.result_id,
                assigned_test_id=r.assigned_test_id,
                value=r.result_data,
                result_date=r.result_date,
            )
            for r in self.db.scalars(stmt).all()
        ]

    # ── writing ───────────────────────────────────────────────────────────
    def commit(self) -> None:
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning(f"stale write rejected: {exc}")
            raise ConcurrentModification() from exc

    def rollback(self) -> None:
        self.db.rollback()
