"""
Assigned Test State Machine

PENDING -> IN_PROGRESS -> COMPLETED, and PENDING/IN_PROGRESS -> CANCELLED.
A final result recorded against a PENDING test completes it directly.
"""
import logging

from .exceptions import AlreadyFinalized, InvalidTransition, TestFinalized
from .status import TestStatus, ResultStatus, OPEN_TEST_STATUSES

logger = logging.getLogger(__name__)


def current_status(assigned_test) -> TestStatus:
    return TestStatus(assigned_test.status)


def is_open(assigned_test) -> bool:
    return current_status(assigned_test) in OPEN_TEST_STATUSES


def start(assigned_test):
    """Technician picks the test up: PENDING -> IN_PROGRESS."""
    status = current_status(assigned_test)
    if status != TestStatus.PENDING:
        raise InvalidTransition("assigned_test", status.value, TestStatus.IN_PROGRESS.value)

    assigned_test.status = TestStatus.IN_PROGRESS.value
    logger.info(f"assigned test {assigned_test.assigned_test_id} started")
    return assigned_test


def cancel(assigned_test):
    status = current_status(assigned_test)
    if status not in OPEN_TEST_STATUSES:
        raise AlreadyFinalized(assigned_test.assigned_test_id, status.value)

    assigned_test.status = TestStatus.CANCELLED.value
    logger.info(f"assigned test {assigned_test.assigned_test_id} cancelled")
    return assigned_test


def record_result(assigned_test, result, final: bool = False):
    """
    Attach `result` as the test's single result.

    The test becomes COMPLETED when the result is REVIEWED or the caller
    marks it final, IN_PROGRESS otherwise.
    """
    status = current_status(assigned_test)
    if status not in OPEN_TEST_STATUSES:
        raise TestFinalized(assigned_test.assigned_test_id, status.value)

    assigned_test.result = result
    if final or ResultStatus.parse(result.status) == ResultStatus.REVIEWED:
        assigned_test.status = TestStatus.COMPLETED.value
    else:
        assigned_test.status = TestStatus.IN_PROGRESS.value

    logger.info(
        f"result recorded for assigned test {assigned_test.assigned_test_id}, "
        f"test now {assigned_test.status}"
    )
    return assigned_test


def complete(assigned_test):
    """Finish an open test whose result was finalised after it was recorded."""
    status = current_status(assigned_test)
    if status not in OPEN_TEST_STATUSES:
        raise TestFinalized(assigned_test.assigned_test_id, status.value)

    assigned_test.status = TestStatus.COMPLETED.value
    logger.info(f"assigned test {assigned_test.assigned_test_id} completed")
    return assigned_test
