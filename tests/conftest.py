"""
Pytest Configuration and Fixtures

Shared fixtures: an in-memory database seeded with a small catalog, and a
coordinator bound to it.
"""
import os
from datetime import datetime
from types import SimpleNamespace

# must be set before clinic.database builds its engine
os.environ.setdefault("DATABASE_URL_CLINIC", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic import model
from clinic.engine.context import Actor, Role
from clinic.engine.coordinator import WorkflowCoordinator, WorkflowPolicy
from clinic.engine.store import WorkflowStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    model.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def catalog(db) -> SimpleNamespace:
    """Patient, staff and catalog rows shared by most tests."""
    patient = model.Patient(name="Amina Yusuf", gender="female", date_of_birth=datetime(1980, 4, 2))
    other_patient = model.Patient(name="Omar Haddad", gender="male")
    doctor = model.Doctor(name="Dr. Lee", specialization="Internal Medicine", email="lee@clinic.test")
    technician = model.Technician(name="Sam Ortiz", department="Haematology", email="sam@clinic.test")
    glucose = model.LabTest(name="Fasting Glucose", unit="mg/dL", ref_min=70, ref_max=140)
    hba1c = model.LabTest(name="HbA1c", unit="%", ref_min=4.0, ref_max=5.6)
    urinalysis = model.LabTest(name="Urinalysis", unit=None, ref_min=None, ref_max=None)
    metformin = model.Medication(name="Metformin", dosage_info="500 mg tablets")
    ibuprofen = model.Medication(name="Ibuprofen", dosage_info="200 mg tablets")

    db.add_all([
        patient, other_patient, doctor, technician,
        glucose, hba1c, urinalysis, metformin, ibuprofen,
    ])
    db.commit()
    return SimpleNamespace(
        patient=patient,
        other_patient=other_patient,
        doctor=doctor,
        technician=technician,
        glucose=glucose,
        hba1c=hba1c,
        urinalysis=urinalysis,
        metformin=metformin,
        ibuprofen=ibuprofen,
    )


@pytest.fixture
def make_examination(db, catalog):
    """Factory for persisted examinations in a given status."""
    def _make(status: str = "SCHEDULED", patient=None) -> model.Examination:
        examination = model.Examination(
            patient_id=(patient or catalog.patient).patient_id,
            doctor_id=catalog.doctor.doctor_id,
            symptoms="fatigue, thirst",
            status=status,
        )
        db.add(examination)
        db.commit()
        return examination
    return _make


@pytest.fixture
def coordinator(db) -> WorkflowCoordinator:
    return WorkflowCoordinator(WorkflowStore(db), WorkflowPolicy())


@pytest.fixture
def doctor_actor(catalog) -> Actor:
    return Actor(user_id=catalog.doctor.doctor_id, role=Role.DOCTOR)


@pytest.fixture
def technician_actor(catalog) -> Actor:
    return Actor(user_id=catalog.technician.technician_id, role=Role.TECHNICIAN)
