"""Services for roster logic."""

from .access import Actor, require_admin, require_same_company
from .attendance import AttendanceTracker, Coordinates, classify_clock_out, distance_metres, verify_location
from .bulk_delete import BulkDeletionService, selector_for_period
from .constraints import ALLOWED_TRANSITIONS, can_transition, find_overlap, validate_shift
from .filters import ShiftFilters, apply_filters
from .from_role import FromRoleResult, RoleShiftCreator
from .marketplace import OpenShiftMarketplace

__all__ = [
    "Actor",
    "require_admin",
    "require_same_company",
    "AttendanceTracker",
    "Coordinates",
    "classify_clock_out",
    "distance_metres",
    "verify_location",
    "BulkDeletionService",
    "selector_for_period",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "find_overlap",
    "validate_shift",
    "ShiftFilters",
    "apply_filters",
    "FromRoleResult",
    "RoleShiftCreator",
    "OpenShiftMarketplace",
]
