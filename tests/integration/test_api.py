"""
Integration Tests for the REST Adapter

Drives the FastAPI routes with TestClient against the seeded test session
and checks how workflow errors map onto HTTP status codes.
"""
import pytest
from fastapi.testclient import TestClient

from clinic import model
from clinic.database import get_db
from clinic.main import app


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def doctor_headers(catalog):
    return {"X-User-Id": str(catalog.doctor.doctor_id), "X-User-Role": "doctor"}


@pytest.fixture
def technician_headers(catalog):
    return {"X-User-Id": str(catalog.technician.technician_id), "X-User-Role": "TECHNICIAN"}


def assign(client, headers, examination_id, *lab_test_ids):
    return client.post(
        f"/examinations/{examination_id}/assigned-tests",
        json={"lab_test_ids": list(lab_test_ids)},
        headers=headers,
    )


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200


class TestIdentity:

    def test_missing_headers(self, client, make_examination, catalog):
        examination = make_examination()
        response = assign(client, {}, examination.examination_id, catalog.glucose.lab_test_id)
        assert response.status_code == 401

    def test_unknown_role(self, client, make_examination, catalog):
        examination = make_examination()
        headers = {"X-User-Id": "1", "X-User-Role": "janitor"}
        response = assign(client, headers, examination.examination_id, catalog.glucose.lab_test_id)
        assert response.status_code == 403

    def test_interpretation_requires_identity(self, client, doctor_headers, technician_headers,
                                              make_examination, catalog):
        examination = make_examination()
        created = assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id)
        assigned_test_id = created.json()["created"][0]["assigned_test_id"]
        client.post(f"/assigned-tests/{assigned_test_id}/result", json={"result_data": "99"},
                    headers=technician_headers)

        response = client.get(f"/assigned-tests/{assigned_test_id}/interpretation")
        assert response.status_code == 401


class TestAssignedTestRoutes:

    def test_assign_and_enter_result(self, client, doctor_headers, technician_headers, make_examination, catalog):
        examination = make_examination()
        response = assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id, 999)

        assert response.status_code == 201
        body = response.json()
        assert body["created"][0]["status"] == "PENDING"
        assert body["created"][0]["test_name"] == "Fasting Glucose"
        assert body["failed"] == [{"lab_test_id": 999, "reason": "lab test 999 not found"}]

        assigned_test_id = body["created"][0]["assigned_test_id"]
        response = client.post(
            f"/assigned-tests/{assigned_test_id}/result",
            json={"result_data": 120},
            headers=technician_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["assigned_test"]["status"] == "COMPLETED"
        assert body["result"]["result_data"] == "120"
        assert body["classification"] == "WITHIN"
        assert body["trend"] == {"signal": None, "delta": None, "history": []}

    def test_interpretation(self, client, doctor_headers, technician_headers, make_examination, catalog):
        for value in ("100", "150"):
            examination = make_examination()
            created = assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id)
            assigned_test_id = created.json()["created"][0]["assigned_test_id"]
            client.post(
                f"/assigned-tests/{assigned_test_id}/result",
                json={"result_data": value},
                headers=technician_headers,
            )

        response = client.get(f"/assigned-tests/{assigned_test_id}/interpretation", headers=doctor_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["classification"] == "ABOVE"
        assert body["trend"]["signal"] == "INCREASING"
        assert body["trend"]["delta"] == pytest.approx(50.0)
        assert [p["value"] for p in body["trend"]["history"]] == ["100"]

    def test_cancel_completed_test_conflicts(self, client, doctor_headers, technician_headers,
                                             make_examination, catalog):
        examination = make_examination()
        created = assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id)
        assigned_test_id = created.json()["created"][0]["assigned_test_id"]
        client.post(f"/assigned-tests/{assigned_test_id}/result", json={"result_data": "99"},
                    headers=technician_headers)

        response = client.put(f"/assigned-tests/{assigned_test_id}/cancel", headers=doctor_headers)

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ALREADY_FINALIZED"

    def test_submit_with_missing_fields(self, client, doctor_headers, make_examination, catalog):
        examination = make_examination()
        created = assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id)
        assigned_test_id = created.json()["created"][0]["assigned_test_id"]

        response = client.post(
            f"/assigned-tests/{assigned_test_id}/result",
            json={"result_data": "99", "status": "SUBMITTED"},
            headers=doctor_headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"]["details"]["fields"] == ["technician_id"]

    def test_unknown_result_status_rejected_by_schema(self, client, technician_headers):
        response = client.post(
            "/assigned-tests/1/result",
            json={"result_data": "99", "status": "FINAL"},
            headers=technician_headers,
        )
        assert response.status_code == 422

    def test_start_and_review(self, client, doctor_headers, technician_headers, make_examination, catalog):
        examination = make_examination()
        created = assign(client, doctor_headers, examination.examination_id, catalog.hba1c.lab_test_id)
        assigned_test_id = created.json()["created"][0]["assigned_test_id"]

        started = client.put(f"/assigned-tests/{assigned_test_id}/start", headers=technician_headers)
        assert started.status_code == 200
        assert started.json()["status"] == "IN_PROGRESS"
        assert started.json()["technician_id"] == catalog.technician.technician_id

        entered = client.post(
            f"/assigned-tests/{assigned_test_id}/result",
            json={"result_data": "6.2", "result_date": "2026-03-02T08:00:00", "status": "SUBMITTED", "final": False},
            headers=technician_headers,
        )
        assert entered.status_code == 201
        assert entered.json()["classification"] == "ABOVE"
        result_id = entered.json()["result"]["result_id"]

        reviewed = client.put(f"/test-results/{result_id}/review", headers=doctor_headers)
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == "REVIEWED"
        assert reviewed.json()["reviewed_by"] == catalog.doctor.doctor_id

        again = client.put(f"/test-results/{result_id}/review", headers=doctor_headers)
        assert again.status_code == 409
        assert again.json()["detail"]["error"] == "NOT_SUBMITTED"

    def test_missing_assigned_test(self, client, doctor_headers):
        response = client.put("/assigned-tests/9999/cancel", headers=doctor_headers)
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NOT_FOUND"


class TestExaminationRoutes:

    def test_cancel_cascades(self, client, doctor_headers, make_examination, catalog):
        examination = make_examination("IN_PROGRESS")
        assign(client, doctor_headers, examination.examination_id,
               catalog.glucose.lab_test_id, catalog.hba1c.lab_test_id)

        response = client.put(
            f"/examinations/{examination.examination_id}/status",
            json={"status": "CANCELLED"},
            headers=doctor_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["previous_status"] == "IN_PROGRESS"
        assert body["examination"]["status"] == "CANCELLED"
        assert [t["status"] for t in body["cancelled_tests"]] == ["CANCELLED", "CANCELLED"]
        assert body["failed"] == []

    def test_strict_completion_conflicts(self, client, doctor_headers, make_examination, catalog):
        examination = make_examination("IN_PROGRESS")
        assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id)

        response = client.put(
            f"/examinations/{examination.examination_id}/status",
            json={"status": "COMPLETED"},
            headers=doctor_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "INVALID_TRANSITION"

    def test_unknown_status(self, client, doctor_headers, make_examination):
        examination = make_examination()
        response = client.put(
            f"/examinations/{examination.examination_id}/status",
            json={"status": "ARCHIVED"},
            headers=doctor_headers,
        )
        assert response.status_code == 422

    def test_assign_to_cancelled_examination(self, client, doctor_headers, make_examination, catalog):
        examination = make_examination("CANCELLED")
        response = assign(client, doctor_headers, examination.examination_id, catalog.glucose.lab_test_id)

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "EXAMINATION_CLOSED"


class TestPrescriptionRoutes:

    def payload(self, catalog):
        return {
            "diagnosis": "Type 2 diabetes",
            "notes": "recheck HbA1c in 3 months",
            "items": [
                {"medication_id": catalog.metformin.medication_id, "dosage": "500 mg",
                 "frequency": "twice daily", "duration": "90 days"},
            ],
        }

    def test_create_and_delete(self, client, db, doctor_headers, make_examination, catalog):
        examination = make_examination("IN_PROGRESS")
        response = client.post(
            f"/examinations/{examination.examination_id}/prescriptions",
            json=self.payload(catalog),
            headers=doctor_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["doctor_id"] == catalog.doctor.doctor_id
        assert body["items"][0]["medication_name"] == "Metformin"

        deleted = client.delete(f"/prescriptions/{body['prescription_id']}", headers=doctor_headers)
        assert deleted.status_code == 200
        assert db.query(model.Prescription).count() == 0

    def test_cancelled_examination(self, client, db, doctor_headers, make_examination, catalog):
        examination = make_examination("CANCELLED")
        response = client.post(
            f"/examinations/{examination.examination_id}/prescriptions",
            json=self.payload(catalog),
            headers=doctor_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "EXAMINATION_CLOSED"
        assert db.query(model.Prescription).count() == 0

    def test_missing_fields(self, client, doctor_headers, make_examination, catalog):
        examination = make_examination()
        response = client.post(
            f"/examinations/{examination.examination_id}/prescriptions",
            json={"diagnosis": " ", "items": [{"medication_id": catalog.metformin.medication_id}]},
            headers=doctor_headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"]["details"]["fields"] == [
            "diagnosis", "items[0].dosage", "items[0].frequency",
        ]
