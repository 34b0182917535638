"""
Test Result State Machine

DRAFT -> SUBMITTED -> REVIEWED. Drafts can be edited indefinitely;
submitted results can still be corrected until a reviewer signs them off.
"""
import logging
from datetime import datetime

from .exceptions import InvalidTransition, NotSubmitted, ResultLocked, ValidationError
from .status import ResultStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("result_data", "comment", "result_date", "technician_id")
REQUIRED_FOR_SUBMIT = ("result_data", "result_date", "technician_id")


def current_status(result) -> ResultStatus:
    return ResultStatus.parse(result.status)


def _missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def update(result, fields: dict):
    status = current_status(result)
    if status == ResultStatus.REVIEWED:
        raise ResultLocked(result.result_id)

    unknown = sorted(name for name in fields if name not in EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(unknown, message=f"fields cannot be edited: {', '.join(unknown)}")

    for name, value in fields.items():
        setattr(result, name, value)
    return result


def submit(result):
    status = current_status(result)
    if status != ResultStatus.DRAFT:
        raise InvalidTransition("test_result", status.value, ResultStatus.SUBMITTED.value)

    missing = [name for name in REQUIRED_FOR_SUBMIT if _missing(getattr(result, name))]
    if missing:
        raise ValidationError(missing)

    result.status = ResultStatus.SUBMITTED.value
    logger.info(f"test result {result.result_id} submitted")
    return result


def review(result, reviewer_id: int):
    status = current_status(result)
    if status != ResultStatus.SUBMITTED:
        raise NotSubmitted(result.result_id, status.value)

    result.status = ResultStatus.REVIEWED.value
    result.reviewed_by = reviewer_id
    result.reviewed_at = datetime.now()
    logger.info(f"test result {result.result_id} reviewed by {reviewer_id}")
    return result
