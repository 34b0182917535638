from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Float, Text
from sqlalchemy.orm import relationship, declarative_base

from clinic.engine.status import ExamStatus, TestStatus, ResultStatus

Base = declarative_base()

class Patient(Base):
    __tablename__ = 'patient'

    patient_id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    gender = Column(String(10), nullable=False)
    date_of_birth = Column(DateTime, nullable=True)
    phone_no = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    archived = Column(Boolean, default=False) # patients are archived, never deleted
    created_at = Column(DateTime, default=datetime.now)

    examinations = relationship("Examination", back_populates="patient")

class Doctor(Base):
    __tablename__ = 'doctor'

    doctor_id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    specialization = Column(String(50), nullable=True)
    email = Column(String(100), nullable=True, unique=True)

    examinations = relationship("Examination", back_populates="doctor")
    prescriptions = relationship("Prescription", back_populates="doctor")

class Technician(Base):
    __tablename__ = 'technician'

    technician_id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    department = Column(String(50), nullable=True)
    email = Column(String(100), nullable=True, unique=True)

    assigned_tests = relationship("AssignedTest", back_populates="technician")
    results = relationship("TestResult", back_populates="technician")

class LabTest(Base):
    __tablename__ = 'lab_test'

    lab_test_id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    unit = Column(String(20), nullable=True)
    ref_min = Column(Float, nullable=True)
    ref_max = Column(Float, nullable=True)

    assigned_tests = relationship("AssignedTest", back_populates="lab_test")

class Medication(Base):
    __tablename__ = 'medication'

    medication_id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    dosage_info = Column(String(255), nullable=True)
    side_effects = Column(String(255), nullable=True)

class Examination(Base):
    __tablename__ = 'examination'

    examination_id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey('patient.patient_id'), nullable=False)
    doctor_id = Column(Integer, ForeignKey('doctor.doctor_id'), nullable=False)

    exam_date = Column(DateTime, default=datetime.now)
    symptoms = Column(String(1000), nullable=True)
    diagnosis = Column(String(255), nullable=True)
    notes = Column(String(1000), nullable=True)
    status = Column(String(12), nullable=False, default=ExamStatus.SCHEDULED.value)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    version = Column(Integer, nullable=False)

    patient = relationship("Patient", back_populates="examinations")
    doctor = relationship("Doctor", back_populates="examinations")
    assigned_tests = relationship(
        "AssignedTest", back_populates="examination", order_by="AssignedTest.assigned_test_id"
    )
    prescriptions = relationship(
        "Prescription", back_populates="examination", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

class AssignedTest(Base):
    __tablename__ = 'assigned_test'

    assigned_test_id = Column(Integer, primary_key=True, index=True)
    examination_id = Column(Integer, ForeignKey('examination.examination_id'), nullable=False)
    lab_test_id = Column(Integer, ForeignKey('lab_test.lab_test_id'), nullable=False)
    technician_id = Column(Integer, ForeignKey('technician.technician_id'), nullable=True)

    status = Column(String(12), nullable=False, default=TestStatus.PENDING.value)
    assigned_date = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    version = Column(Integer, nullable=False)

    examination = relationship("Examination", back_populates="assigned_tests")
    lab_test = relationship("LabTest", back_populates="assigned_tests")
    technician = relationship("Technician", back_populates="assigned_tests")
    result = relationship("TestResult", back_populates="assigned_test", uselist=False)

    __mapper_args__ = {"version_id_col": version}

class TestResult(Base):
    __tablename__ = 'test_result'

    result_id = Column(Integer, primary_key=True, index=True)
    assigned_test_id = Column(
        Integer, ForeignKey('assigned_test.assigned_test_id'), nullable=False, unique=True
    )
    technician_id = Column(Integer, ForeignKey('technician.technician_id'), nullable=True)

    result_data = Column(String(50), nullable=True) # value as entered, parsed on read
    comment = Column(Text, nullable=True)
    result_date = Column(DateTime, nullable=True)
    status = Column(String(12), nullable=False, default=ResultStatus.DRAFT.value)
    reviewed_by = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    version = Column(Integer, nullable=False)

    assigned_test = relationship("AssignedTest", back_populates="result")
    technician = relationship("Technician", back_populates="results")

    __mapper_args__ = {"version_id_col": version}

class Prescription(Base):
    __tablename__ = 'prescription'

    prescription_id = Column(Integer, primary_key=True, index=True)
    examination_id = Column(Integer, ForeignKey('examination.examination_id'), nullable=False)
    doctor_id = Column(Integer, ForeignKey('doctor.doctor_id'), nullable=True)

    diagnosis = Column(String(255), nullable=False)
    notes = Column(String(1000), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    examination = relationship("Examination", back_populates="prescriptions")
    doctor = relationship("Doctor", back_populates="prescriptions")
    items = relationship(
        "PrescriptionItem",
        back_populates="prescription",
        order_by="PrescriptionItem.position",
        cascade="all, delete-orphan",
    )

class PrescriptionItem(Base):
    __tablename__ = 'prescription_item'

    item_id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer, ForeignKey('prescription.prescription_id'), nullable=False)
    medication_id = Column(Integer, ForeignKey('medication.medication_id'), nullable=False)

    position = Column(Integer, nullable=False, default=0)
    dosage = Column(String(100), nullable=False)
    frequency = Column(String(100), nullable=False)
    duration = Column(String(100), nullable=True)

    prescription = relationship("Prescription", back_populates="items")
    medication = relationship("Medication")
