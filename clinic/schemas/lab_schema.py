from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field, AliasPath, field_validator

from clinic.engine.status import ResultStatus

# results are typed into a free-text box; numbers sent as JSON numbers are kept as text
valuestr = Annotated[str | None, BeforeValidator(lambda v: v if v is None or isinstance(v, str) else str(v))]

class AssignTests(BaseModel):
    lab_test_ids: list[int]

class AssignedTestOut(BaseModel):
    assigned_test_id: int
    examination_id: int
    lab_test_id: int
    technician_id: int | None
    test_name: str = Field(validation_alias=AliasPath("lab_test", "name"))
    status: str
    assigned_date: datetime | None

    model_config = {"from_attributes": True}

class AssignmentFailureOut(BaseModel):
    lab_test_id: int
    reason: str

class AssignTestsOut(BaseModel):
    created: list[AssignedTestOut]
    failed: list[AssignmentFailureOut]

class ResultEntryIn(BaseModel):
    result_data: valuestr = None
    notes: str | None = None
    result_date: datetime | None = None
    status: str | None = None
    final: bool = True
    technician_id: int | None = None

    @field_validator("status")
    @classmethod
    def known_status(cls, value):
        if value is None:
            return value
        try:
            return ResultStatus.parse(value).value
        except ValueError:
            raise ValueError(f"status must be one of {[s.value for s in ResultStatus]}")

class TestResultOut(BaseModel):
    result_id: int
    assigned_test_id: int
    technician_id: int | None
    result_data: str | None
    comment: str | None
    result_date: datetime | None
    status: str
    reviewed_by: int | None
    reviewed_at: datetime | None

    model_config = {"from_attributes": True}

class PriorResultOut(BaseModel):
    result_id: int
    assigned_test_id: int
    value: str | None
    result_date: datetime | None

    model_config = {"from_attributes": True}

class TrendOut(BaseModel):
    signal: str | None
    delta: float | None
    history: list[PriorResultOut]

class ResultEntryOut(BaseModel):
    result: TestResultOut
    assigned_test: AssignedTestOut
    classification: str
    trend: TrendOut
