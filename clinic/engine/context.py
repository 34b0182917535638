from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    TECHNICIAN = "TECHNICIAN"
    RECEPTIONIST = "RECEPTIONIST"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, handed in explicitly on every workflow call."""
    user_id: int
    role: Role

    @property
    def is_technician(self) -> bool:
        return self.role == Role.TECHNICIAN

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR
