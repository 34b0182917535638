from datetime import datetime

from pydantic import BaseModel, Field, AliasPath

class PrescriptionItemIn(BaseModel):
    medication_id: int | None = None
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None

class PrescriptionIn(BaseModel):
    diagnosis: str | None = None
    notes: str | None = None
    items: list[PrescriptionItemIn] = []

class PrescriptionItemOut(BaseModel):
    item_id: int
    medication_id: int
    medication_name: str = Field(validation_alias=AliasPath("medication", "name"))
    dosage: str
    frequency: str
    duration: str | None

    model_config = {"from_attributes": True}

class PrescriptionOut(BaseModel):
    prescription_id: int
    examination_id: int
    doctor_id: int | None
    diagnosis: str
    notes: str | None
    created_at: datetime | None
    items: list[PrescriptionItemOut]

    model_config = {"from_attributes": True}
