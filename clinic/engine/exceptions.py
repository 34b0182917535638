"""
Workflow Error Hierarchy

Every failure the engine reports is a WorkflowError subclass carrying a
stable code and structured details. None of them is fatal to the process;
they are per-call failures returned to the caller.
"""
from typing import Optional, Dict, Any, List


class WorkflowError(Exception):
    """Base exception for all workflow errors."""

    def __init__(
        self,
        message: str,
        code: str = "WORKFLOW_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(WorkflowError):
    """Missing or malformed input fields."""

    def __init__(self, fields: List[str], message: Optional[str] = None):
        super().__init__(
            message=message or f"missing or invalid fields: {', '.join(fields)}",
            code="VALIDATION_ERROR",
            details={"fields": list(fields)}
        )
        self.fields = list(fields)


class InvalidTransition(WorkflowError):
    """Requested status edge is not in the allowed table."""

    def __init__(
        self,
        entity: str,
        current: str,
        target: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message or f"{entity} cannot move from {current} to {target}",
            code="INVALID_TRANSITION",
            details={"entity": entity, "current": current, "target": target, **(details or {})}
        )
        self.entity = entity
        self.current = current
        self.target = target


class AlreadyFinalized(WorkflowError):
    """Assigned test is already COMPLETED or CANCELLED."""

    def __init__(self, assigned_test_id: Optional[int], status: str):
        super().__init__(
            message=f"assigned test {assigned_test_id} is already {status}",
            code="ALREADY_FINALIZED",
            details={"assigned_test_id": assigned_test_id, "status": status}
        )


class TestFinalized(WorkflowError):
    """A result cannot be recorded against a finished assigned test."""

    def __init__(self, assigned_test_id: Optional[int], status: str):
        super().__init__(
            message=f"assigned test {assigned_test_id} is {status}; no result can be recorded",
            code="TEST_FINALIZED",
            details={"assigned_test_id": assigned_test_id, "status": status}
        )


class NotSubmitted(WorkflowError):
    """Only SUBMITTED results can be reviewed."""

    def __init__(self, result_id: Optional[int], status: str):
        super().__init__(
            message=f"test result {result_id} is {status}, not SUBMITTED",
            code="NOT_SUBMITTED",
            details={"result_id": result_id, "status": status}
        )


class ResultLocked(WorkflowError):
    """Reviewed results are immutable."""

    def __init__(self, result_id: Optional[int]):
        super().__init__(
            message=f"test result {result_id} has been reviewed and is locked",
            code="RESULT_LOCKED",
            details={"result_id": result_id}
        )


class ExaminationClosed(WorkflowError):
    """The examination's status does not allow the operation."""

    def __init__(self, examination_id: Optional[int], status: str, operation: str):
        super().__init__(
            message=f"examination {examination_id} is {status}; cannot {operation}",
            code="EXAMINATION_CLOSED",
            details={"examination_id": examination_id, "status": status, "operation": operation}
        )


class ConcurrentModification(WorkflowError):
    """The entity changed between load and write; reload and retry."""

    def __init__(self, message: str = "entity was modified by another request"):
        super().__init__(message=message, code="CONCURRENT_MODIFICATION")


class NotFound(WorkflowError):
    """Referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} {entity_id} not found",
            code="NOT_FOUND",
            details={"entity": entity, "id": entity_id}
        )
        self.entity = entity
        self.entity_id = entity_id
