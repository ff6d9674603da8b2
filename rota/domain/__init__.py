"""Domain models and data access layer."""

from .models import Base, RequestStatus, Role, RoleShift, Shift, ShiftRequest, ShiftStatus, ShiftType
from .repositories import DatabaseManager, RoleRepository, ShiftRepository, ShiftRequestRepository
from .selectors import BulkDeleteSelector

__all__ = [
    "Base",
    "Shift",
    "Role",
    "RoleShift",
    "ShiftRequest",
    "ShiftStatus",
    "ShiftType",
    "RequestStatus",
    "BulkDeleteSelector",
    "DatabaseManager",
    "ShiftRepository",
    "RoleRepository",
    "ShiftRequestRepository",
]
