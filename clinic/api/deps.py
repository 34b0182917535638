from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from clinic.config import get_settings
from clinic.database import get_db
from clinic.engine.context import Actor, Role
from clinic.engine.coordinator import WorkflowCoordinator, WorkflowPolicy
from clinic.engine.exceptions import WorkflowError, ValidationError, NotFound
from clinic.engine.store import WorkflowStore

def get_actor(
    x_user_id: Annotated[int | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """The auth layer in front of this service sets these headers."""
    if x_user_id is None or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing caller identity")
    try:
        role = Role(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"unknown role {x_user_role}")
    return Actor(user_id=x_user_id, role=role)

def get_coordinator(db: Session = Depends(get_db)) -> WorkflowCoordinator:
    return WorkflowCoordinator(WorkflowStore(db), WorkflowPolicy.from_settings(get_settings()))

def http_error(exc: WorkflowError) -> HTTPException:
    if isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_409_CONFLICT
    return HTTPException(status_code=code, detail=exc.to_dict())
