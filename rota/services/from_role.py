"""Create the seats of one role pattern occurrence for hand-picked staff."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from rota.config import RotaConfig
from rota.domain.models import Shift, ShiftStatus, ShiftType
from rota.domain.repositories import RoleRepository, ShiftRepository
from rota.errors import ConflictError, PartialFailure, ValidationError

from .access import Actor, require_admin, require_same_company
from .providers import LocationRegistry
from .timeplan import pattern_times, task_description, weekday_index


def next_pattern_day(pattern_start_day: str, day: date) -> date:
    """First date on or after ``day`` falling on the pattern's start weekday."""
    return day + timedelta(days=(weekday_index(pattern_start_day) - day.weekday()) % 7)


@dataclass
class FromRoleResult:
    """Outcome of creating shifts from a role pattern."""

    day: date
    start_time: datetime
    end_time: datetime
    created: List[Shift] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)
    partial_failure: Optional[PartialFailure] = None


class RoleShiftCreator:
    """Admins turn one occurrence of a role pattern into assigned shifts."""

    def __init__(self, cfg: Optional[RotaConfig] = None, locations: Optional[LocationRegistry] = None):
        self.cfg = cfg or RotaConfig()
        self.locations = locations

    def create_from_pattern(
        self,
        session: Session,
        actor: Actor,
        role_shift_id: str,
        day: date,
        staff_ids: Sequence[str],
    ) -> FromRoleResult:
        """
        Create one assigned shift per chosen staff member (admin only).

        ``day`` moves forward to the pattern's start weekday. Staff fill
        seats 1..n in the order given. A staff member who cannot be booked
        is recorded in ``failed`` and the others are still created.

        Raises:
            AuthorizationError: Caller is not an admin of the role's company
            NotFoundError: Unknown pattern
            ValidationError: Inactive pattern, wrong staff count, duplicate or unqualified staff
        """
        require_admin(actor, "create shifts from a role")
        pattern = RoleRepository.get_pattern(session, role_shift_id)
        role = pattern.role
        require_same_company(actor, role.company_id)

        if not (role.is_active and pattern.is_active):
            raise ValidationError(f"Pattern '{pattern.name}' of role '{role.title}' is not active")

        required = pattern.required_staff or 1
        staff_ids = list(staff_ids)
        if len(staff_ids) != required:
            raise ValidationError(f"Select exactly {required} staff members, got {len(staff_ids)}")
        if len(set(staff_ids)) != len(staff_ids):
            raise ValidationError("The same staff member was selected twice")
        unqualified = [s for s in staff_ids if s not in (role.qualified_users or [])]
        if unqualified:
            raise ValidationError(f"Not qualified for {role.title}: {', '.join(unqualified)}")

        day = next_pattern_day(pattern.start_day, day)
        start, end = pattern_times(pattern, day)
        label = f"{role.title}: {pattern.name}"
        print(f"[INFO] Creating {required} shifts for {label} on {day.isoformat()}")

        location = self.locations.get(pattern.location_id) if self.locations and pattern.location_id else None
        description = task_description(pattern)

        result = FromRoleResult(day=day, start_time=start, end_time=end)
        for seat, user_id in enumerate(staff_ids, start=1):
            shift = Shift(
                company_id=role.company_id,
                title=label,
                description=description,
                start_time=start,
                end_time=end,
                type=ShiftType.ASSIGNED,
                user_id=user_id,
                status=ShiftStatus.SCHEDULED,
                location=location.name if location else None,
                location_address=location.address if location else None,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                role_id=role.id,
                role_shift_id=pattern.id,
                seat=seat,
                created_by=actor.user_id,
            )
            try:
                ShiftRepository.create(session, shift, self.cfg.max_shift_hours)
            except (ValidationError, ConflictError) as e:
                result.failed.append({"user_id": user_id, "error": str(e)})
                print(f"[WARN] Could not book {user_id} for {label}: {e}")
                continue
            result.created.append(shift)

        if result.failed:
            result.partial_failure = PartialFailure([s.id for s in result.created], result.failed)
            print(f"[WARN] {len(result.failed)} of {required} shifts failed to persist")
        print(f"[OK] Created {len(result.created)} shifts for {label}")
        return result
