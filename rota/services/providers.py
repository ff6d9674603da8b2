"""Interfaces to external collaborators: staff directory, leave calendar, locations.

The roster engine never owns HR profiles, leave approval or geocoding. It asks
these providers and works with their answers. Static implementations back the
CLI and the tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from rota.domain.models import Role


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    company_id: Optional[str] = None  # None: shared by every company
    radius: float = 100.0  # geo-fence, metres
    is_active: bool = True


class StaffDirectory(ABC):
    """Qualification lookup."""

    @abstractmethod
    def qualified_staff(self, role: Role) -> List[StaffMember]:
        """
        Staff eligible for a role, in the directory's preferred order.

        That order is what the simple algorithm treats as "first".
        """

    def display_name(self, staff_id: str) -> str:
        return staff_id


class LeaveCalendar(ABC):
    """Approved leave / time-off status."""

    @abstractmethod
    def is_on_leave(self, staff_id: str, day: date) -> bool:
        """True if the staff member has approved leave covering ``day``."""


class LocationRegistry(ABC):
    """Company locations with already-geocoded coordinates."""

    @abstractmethod
    def get(self, location_id: str) -> Optional[Location]:
        """Location for an id, or None when unknown."""

    @abstractmethod
    def company_locations(self, company_id: str) -> List[Location]:
        """Work locations of a company, active or not."""


class RoleStaffDirectory(StaffDirectory):
    """Reads qualification from ``Role.qualified_users``; names from an optional map."""

    def __init__(self, names: Optional[Mapping[str, str]] = None):
        self.names = dict(names or {})

    def qualified_staff(self, role: Role) -> List[StaffMember]:
        return [StaffMember(id=staff_id, name=self.display_name(staff_id)) for staff_id in role.qualified_users or []]

    def display_name(self, staff_id: str) -> str:
        return self.names.get(staff_id, staff_id)


class StaticLeaveCalendar(LeaveCalendar):
    """Leave given as ``{staff_id: [(first_day, last_day), ...]}`` (inclusive)."""

    def __init__(self, leave: Optional[Mapping[str, Iterable[Tuple[date, date]]]] = None):
        self.leave: Dict[str, List[Tuple[date, date]]] = {
            staff_id: list(periods) for staff_id, periods in (leave or {}).items()
        }

    def is_on_leave(self, staff_id: str, day: date) -> bool:
        return any(first <= day <= last for first, last in self.leave.get(staff_id, []))


class NoLeave(LeaveCalendar):
    def is_on_leave(self, staff_id: str, day: date) -> bool:
        return False


class StaticLocationRegistry(LocationRegistry):
    def __init__(self, locations: Iterable[Location] = ()):
        self.locations: Dict[str, Location] = {loc.id: loc for loc in locations}

    def get(self, location_id: str) -> Optional[Location]:
        return self.locations.get(location_id)

    def company_locations(self, company_id: str) -> List[Location]:
        return [loc for loc in self.locations.values() if loc.company_id in (None, company_id)]
