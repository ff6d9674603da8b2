"""Clock-in / clock-out state transitions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from rota.config import RotaConfig
from rota.domain.models import Shift, ShiftStatus
from rota.domain.repositories import ShiftRepository
from rota.errors import AuthorizationError, ConflictError, ValidationError
from rota.timewindow import to_utc, utc_now

from .access import Actor, require_admin, require_same_company
from .providers import Location, LocationRegistry

EARTH_RADIUS_METRES = 6371e3


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90 or not -180 <= self.longitude <= 180:
            raise ValidationError(f"Coordinates out of range: ({self.latitude}, {self.longitude})")


def distance_metres(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_METRES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def verify_location(position: Optional[Coordinates], locations: Iterable[Location]) -> Location:
    """
    Work location whose geo-fence contains ``position``.

    Inactive locations and locations without coordinates are ignored.

    Raises:
        ValidationError: No position, no usable work location, or outside every geo-fence
    """
    if position is None:
        raise ValidationError("Location not available")
    usable = [
        loc for loc in locations if loc.is_active and loc.latitude is not None and loc.longitude is not None
    ]
    if not usable:
        raise ValidationError("No work locations configured")

    distances = []
    for loc in usable:
        distance = distance_metres(position.latitude, position.longitude, loc.latitude, loc.longitude)
        if distance <= loc.radius:
            return loc
        distances.append(distance)
    raise ValidationError(f"Not at a work location: {int(min(distances) + 0.5)}m to nearest location")


def classify_clock_out(scheduled_end: datetime, clocked_out: datetime, grace: timedelta) -> str:
    """
    Completion status for a clock-out.

    Earlier than ``end - grace`` is early, later than ``end + grace`` is
    overtime, anything inside the grace band is a plain completion.
    """
    if clocked_out < scheduled_end - grace:
        return ShiftStatus.COMPLETED_EARLY
    if clocked_out > scheduled_end + grace:
        return ShiftStatus.COMPLETED_OVERTIME
    return ShiftStatus.COMPLETED


class AttendanceTracker:
    """
    Moves assigned shifts through scheduled -> in-progress -> completed*.

    Every transition is a compare-and-swap on the stored status, so two
    devices clocking in on the same shift cannot both succeed.
    """

    def __init__(self, cfg: Optional[RotaConfig] = None, locations: Optional[LocationRegistry] = None):
        self.cfg = cfg or RotaConfig()
        # Without a registry, positions are recorded but not checked
        self.locations = locations

    @property
    def grace(self) -> timedelta:
        return timedelta(minutes=self.cfg.clock_out_grace_minutes)

    @staticmethod
    def _check_owner(shift: Shift, staff_id: str, action: str) -> None:
        if not shift.user_id or shift.user_id != staff_id:
            raise AuthorizationError(f"Staff {staff_id} cannot {action} on shift {shift.id}: not the assignee")

    def _check_location(self, shift: Shift, position: Optional[Coordinates]) -> None:
        if self.locations is not None:
            verify_location(position, self.locations.company_locations(shift.company_id))

    def clock_in(
        self,
        session: Session,
        shift_id: str,
        staff_id: str,
        location: Optional[Coordinates] = None,
        now: Optional[datetime] = None,
    ) -> Shift:
        """
        Start a scheduled shift.

        Raises:
            NotFoundError: Unknown shift
            AuthorizationError: ``staff_id`` is not the assignee
            ConflictError: The shift is not ``scheduled``
            ValidationError: Location checks are on and the staff member is not at a work location
        """
        now = to_utc(now) if now else utc_now()
        shift = ShiftRepository.get(session, shift_id)
        self._check_owner(shift, staff_id, "clock in")
        if shift.status != ShiftStatus.SCHEDULED:
            raise ConflictError(f"Cannot clock in: shift {shift_id} is '{shift.status}', not 'scheduled'")
        self._check_location(shift, location)

        return ShiftRepository.transition_status(
            session,
            shift_id,
            ShiftStatus.SCHEDULED,
            ShiftStatus.IN_PROGRESS,
            criteria=[Shift.user_id == staff_id],
            actual_start=now,
            clock_in_latitude=location.latitude if location else None,
            clock_in_longitude=location.longitude if location else None,
        )

    def clock_out(
        self,
        session: Session,
        shift_id: str,
        staff_id: str,
        location: Optional[Coordinates] = None,
        now: Optional[datetime] = None,
    ) -> Shift:
        """
        Finish an in-progress shift, classifying it against the scheduled end.

        Raises:
            NotFoundError: Unknown shift
            AuthorizationError: ``staff_id`` is not the assignee
            ConflictError: The shift is not ``in-progress``
            ValidationError: Location checks are on and the staff member is not at a work location
        """
        now = to_utc(now) if now else utc_now()
        shift = ShiftRepository.get(session, shift_id)
        self._check_owner(shift, staff_id, "clock out")
        if shift.status != ShiftStatus.IN_PROGRESS:
            raise ConflictError(f"Cannot clock out: shift {shift_id} is '{shift.status}', not 'in-progress'")
        self._check_location(shift, location)

        outcome = classify_clock_out(shift.end_time, now, self.grace)
        return ShiftRepository.transition_status(
            session,
            shift_id,
            ShiftStatus.IN_PROGRESS,
            outcome,
            criteria=[Shift.user_id == staff_id],
            actual_end=now,
            clock_out_latitude=location.latitude if location else None,
            clock_out_longitude=location.longitude if location else None,
        )

    def cancel(self, session: Session, actor: Actor, shift_id: str) -> Shift:
        """
        Cancel a shift that has not completed yet (admin only).

        Raises:
            AuthorizationError: Caller is not an admin of the shift's company
            ConflictError: The shift already completed or was cancelled
        """
        require_admin(actor, "cancel shifts")
        shift = ShiftRepository.get(session, shift_id)
        require_same_company(actor, shift.company_id)
        return ShiftRepository.transition_status(
            session,
            shift_id,
            (ShiftStatus.OPEN, ShiftStatus.SCHEDULED, ShiftStatus.LATE, ShiftStatus.IN_PROGRESS),
            ShiftStatus.CANCELLED,
        )
