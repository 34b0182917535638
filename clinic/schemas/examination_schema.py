from datetime import datetime

from pydantic import BaseModel

from clinic.schemas.lab_schema import AssignedTestOut

class StatusUpdate(BaseModel):
    status: str

class ExaminationOut(BaseModel):
    examination_id: int
    patient_id: int
    doctor_id: int
    exam_date: datetime | None
    symptoms: str | None
    diagnosis: str | None
    notes: str | None
    status: str
    updated_at: datetime | None

    model_config = {"from_attributes": True}

class CascadeFailureOut(BaseModel):
    assigned_test_id: int
    reason: str

class StatusChangeOut(BaseModel):
    examination: ExaminationOut
    previous_status: str
    cancelled_tests: list[AssignedTestOut] = []
    failed: list[CascadeFailureOut] = []
