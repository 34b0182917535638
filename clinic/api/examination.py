from fastapi import APIRouter, status, Depends

from clinic.api.deps import get_actor, get_coordinator, http_error
from clinic.engine.context import Actor
from clinic.engine.coordinator import WorkflowCoordinator, PrescriptionItemInput
from clinic.engine.exceptions import WorkflowError
from clinic.schemas import examination_schema as schema
from clinic.schemas import lab_schema, prescription_schema

router = APIRouter(tags=["Examination"])

@router.post("/examinations/{examination_id}/assigned-tests", response_model=lab_schema.AssignTestsOut,
             status_code=status.HTTP_201_CREATED)
def assign_tests(
    examination_id: int,
    request: lab_schema.AssignTests,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Assign catalog lab tests to an examination.

    **Path Parameters:**
    - `examination_id` (int, required): The examination receiving the tests.

    **Request Body:**
    - `lab_test_ids` (list[int], required): Catalog lab tests to assign.

    **Response (201 Created):**
    - `created`: assigned tests created in PENDING status
    - `failed`: `{lab_test_id, reason}` for every id that could not be assigned

    **Note:**
    - Each lab test is assigned independently; one unknown id does not block the others.

    **Error Responses:**
    - `404 Not Found`: Examination does not exist
    - `409 Conflict`: Examination is COMPLETED or CANCELLED
    - `422 Unprocessable Entity`: `lab_test_ids` is empty
    """
    try:
        outcome = coordinator.assign_tests(actor, examination_id, request.lab_test_ids)
        return lab_schema.AssignTestsOut(
            created=[lab_schema.AssignedTestOut.model_validate(t) for t in outcome.created],
            failed=[lab_schema.AssignmentFailureOut(**f.to_dict()) for f in outcome.failed],
        )
    except WorkflowError as exc:
        raise http_error(exc)

@router.put("/examinations/{examination_id}/status", response_model=schema.StatusChangeOut,
            status_code=status.HTTP_200_OK)
def update_examination_status(
    examination_id: int,
    request: schema.StatusUpdate,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Move an examination to a new status.

    **Request Body:**
    - `status` (str, required): One of SCHEDULED, IN_PROGRESS, COMPLETED, CANCELLED.

    **Side Effects:**
    - Cancelling the examination cancels every PENDING / IN_PROGRESS assigned test.
      Tests that could not be cancelled are listed in `failed`.

    **Error Responses:**
    - `404 Not Found`: Examination does not exist
    - `409 Conflict`: Transition not allowed, open tests block completion, or the
      examination was changed by another request
    - `422 Unprocessable Entity`: Unknown status
    """
    try:
        change = coordinator.update_examination_status(actor, examination_id, request.status)
        return schema.StatusChangeOut(
            examination=schema.ExaminationOut.model_validate(change.examination),
            previous_status=change.previous.value,
            cancelled_tests=[lab_schema.AssignedTestOut.model_validate(t) for t in change.cancelled_tests],
            failed=[schema.CascadeFailureOut(**f.to_dict()) for f in change.failed],
        )
    except WorkflowError as exc:
        raise http_error(exc)

@router.post("/examinations/{examination_id}/prescriptions", response_model=prescription_schema.PrescriptionOut,
             status_code=status.HTTP_201_CREATED, tags=["Prescription"])
def create_prescription(
    examination_id: int,
    request: prescription_schema.PrescriptionIn,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Issue a prescription for an examination.

    **Request Body:**
    - `diagnosis` (str, required)
    - `notes` (str, optional)
    - `items` (list, required): each with `medication_id`, `dosage`, `frequency`
      and an optional `duration`.

    **Error Responses:**
    - `404 Not Found`: Examination does not exist
    - `409 Conflict`: Examination is CANCELLED
    - `422 Unprocessable Entity`: Missing fields, listed in `details.fields`
    """
    try:
        prescription = coordinator.create_prescription(
            actor,
            examination_id,
            request.diagnosis,
            [PrescriptionItemInput(**item.model_dump()) for item in request.items],
            notes=request.notes,
        )
        return prescription_schema.PrescriptionOut.model_validate(prescription)
    except WorkflowError as exc:
        raise http_error(exc)

@router.delete("/prescriptions/{prescription_id}", status_code=status.HTTP_200_OK, tags=["Prescription"])
def delete_prescription(
    prescription_id: int,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Delete a prescription while its examination is still open.

    **Error Responses:**
    - `404 Not Found`: Prescription does not exist
    - `409 Conflict`: Examination is COMPLETED or CANCELLED
    """
    try:
        coordinator.delete_prescription(actor, prescription_id)
        return {"message": "prescription deleted"}
    except WorkflowError as exc:
        raise http_error(exc)
