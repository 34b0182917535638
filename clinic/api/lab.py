from fastapi import APIRouter, status, Depends

from clinic.api.deps import get_actor, get_coordinator, http_error
from clinic.engine.context import Actor
from clinic.engine.coordinator import WorkflowCoordinator, ResultPayload, ResultEntry
from clinic.engine.exceptions import WorkflowError
from clinic.schemas import lab_schema as schema

router = APIRouter(tags=["Lab"])

def entry_out(entry: ResultEntry) -> schema.ResultEntryOut:
    return schema.ResultEntryOut(
        result=schema.TestResultOut.model_validate(entry.result),
        assigned_test=schema.AssignedTestOut.model_validate(entry.assigned_test),
        classification=entry.classification.value,
        trend=schema.TrendOut(**entry.trend.to_dict()),
    )

@router.put("/assigned-tests/{assigned_test_id}/start", response_model=schema.AssignedTestOut)
def start_assigned_test(
    assigned_test_id: int,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Mark a PENDING assigned test as IN_PROGRESS. A technician caller becomes
    the test's technician when none is set.
    """
    try:
        return schema.AssignedTestOut.model_validate(coordinator.start_assigned_test(actor, assigned_test_id))
    except WorkflowError as exc:
        raise http_error(exc)

@router.put("/assigned-tests/{assigned_test_id}/cancel", response_model=schema.AssignedTestOut)
def cancel_assigned_test(
    assigned_test_id: int,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Cancel an assigned test.

    **Error Responses:**
    - `404 Not Found`: Assigned test does not exist
    - `409 Conflict`: Test is already COMPLETED or CANCELLED
    """
    try:
        return schema.AssignedTestOut.model_validate(coordinator.cancel_assigned_test(actor, assigned_test_id))
    except WorkflowError as exc:
        raise http_error(exc)

@router.post("/assigned-tests/{assigned_test_id}/result", response_model=schema.ResultEntryOut,
             status_code=status.HTTP_201_CREATED)
def enter_result(
    assigned_test_id: int,
    request: schema.ResultEntryIn,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Enter or correct the result of an assigned test.

    **Request Body:**
    - `result_data` (str, optional): Measured value as entered.
    - `notes` (str, optional): Technician comment.
    - `result_date` (ISO-8601 datetime, optional)
    - `status` (str, optional): DRAFT (or PENDING), SUBMITTED or REVIEWED.
    - `final` (bool, default true): Complete the assigned test with this result.

    **Response (201 Created):**
    The stored result, the assigned test, the reference-range `classification`
    (BELOW / WITHIN / ABOVE / UNCLASSIFIED) and the `trend` against the patient's
    previous results for the same lab test.

    **Error Responses:**
    - `404 Not Found`: Assigned test does not exist
    - `409 Conflict`: Test is finished, result is locked, or an illegal status change
    - `422 Unprocessable Entity`: Fields required for submission are missing
    """
    try:
        payload = ResultPayload(**request.model_dump())
        return entry_out(coordinator.enter_result(actor, assigned_test_id, payload))
    except WorkflowError as exc:
        raise http_error(exc)

@router.get("/assigned-tests/{assigned_test_id}/interpretation", response_model=schema.ResultEntryOut)
def interpret_result(
    assigned_test_id: int,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """Classification and trend for the result already stored on an assigned test."""
    try:
        return entry_out(coordinator.interpret_result(actor, assigned_test_id))
    except WorkflowError as exc:
        raise http_error(exc)

@router.put("/test-results/{result_id}/review", response_model=schema.TestResultOut)
def review_result(
    result_id: int,
    actor: Actor = Depends(get_actor),
    coordinator: WorkflowCoordinator = Depends(get_coordinator),
):
    """
    Sign off a SUBMITTED result. The caller is recorded as reviewer.

    **Error Responses:**
    - `404 Not Found`: Result does not exist
    - `409 Conflict`: Result is not SUBMITTED
    """
    try:
        return schema.TestResultOut.model_validate(coordinator.review_result(actor, result_id))
    except WorkflowError as exc:
        raise http_error(exc)
