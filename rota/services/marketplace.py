"""Open-shift marketplace: listing unassigned shifts and claim requests."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from rota.config import RotaConfig
from rota.domain.models import RequestStatus, Shift, ShiftRequest, ShiftStatus, ShiftType
from rota.domain.repositories import ShiftRepository, ShiftRequestRepository
from rota.errors import ConflictError, ValidationError
from rota.timewindow import to_utc, utc_now

from .access import Actor, require_admin, require_same_company


class OpenShiftMarketplace:
    """Staff browse open shifts and ask to take them; admins decide."""

    def __init__(self, cfg: Optional[RotaConfig] = None):
        self.cfg = cfg or RotaConfig()

    def list_open(
        self,
        session: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        company_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Shift]:
        """
        Open shifts starting in ``[start, end)``.

        Without a range, lists from the start of today for the configured
        look-ahead window.
        """
        if start is None:
            start = (to_utc(now) if now else utc_now()).replace(hour=0, minute=0, second=0, microsecond=0)
        if end is None:
            end = to_utc(start) + timedelta(days=self.cfg.open_shift_lookahead_days)
        return ShiftRepository.query(session, start, end, company_id=company_id, shift_type=ShiftType.OPEN)

    def request_claim(
        self,
        session: Session,
        actor: Actor,
        shift_id: str,
        notes: Optional[str] = None,
    ) -> ShiftRequest:
        """
        Record a staff member's request to take an open shift.

        Raises:
            NotFoundError: Unknown shift
            AuthorizationError: Shift belongs to another company
            ConflictError: Shift is not open, or the staff member already has a pending request for it
        """
        shift = ShiftRepository.get(session, shift_id)
        require_same_company(actor, shift.company_id)
        if shift.type != ShiftType.OPEN or shift.status != ShiftStatus.OPEN:
            raise ConflictError(f"Shift {shift_id} is not open for requests")

        for pending in ShiftRequestRepository.get_pending_for_shift(session, shift_id):
            if pending.user_id == actor.user_id:
                raise ConflictError(f"{actor.user_id} already has a pending request for shift {shift_id}")

        request = ShiftRequest(
            shift_id=shift_id,
            company_id=shift.company_id,
            user_id=actor.user_id,
            status=RequestStatus.PENDING,
            staff_notes=notes,
        )
        return ShiftRequestRepository.create(session, request)

    def respond(
        self,
        session: Session,
        actor: Actor,
        request_id: str,
        approve: bool,
        admin_notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ShiftRequest:
        """
        Approve or reject a pending request (admin only).

        Approval assigns the shift to the requester through a compare-and-swap
        on the open seat; competing pending requests are rejected.

        Raises:
            AuthorizationError: Caller is not an admin of the request's company
            ConflictError: Request already answered, seat taken meanwhile, or requester double-booked
        """
        require_admin(actor, "answer shift requests")
        now = to_utc(now) if now else utc_now()
        request = ShiftRequestRepository.get(session, request_id)
        require_same_company(actor, request.company_id)
        if request.status != RequestStatus.PENDING:
            raise ConflictError(f"Request {request_id} was already {request.status}")

        if approve:
            shift = ShiftRepository.get(session, request.shift_id)
            clashes = ShiftRepository.get_bookings(session, [request.user_id], shift.start_time, shift.end_time)
            if clashes:
                raise ConflictError(f"{request.user_id} is already booked at that time (shift {clashes[0].id})")

            ShiftRepository.transition_status(
                session,
                request.shift_id,
                ShiftStatus.OPEN,
                ShiftStatus.SCHEDULED,
                criteria=[Shift.type == ShiftType.OPEN, Shift.user_id.is_(None)],
                type=ShiftType.ASSIGNED,
                user_id=request.user_id,
            )
            for other in ShiftRequestRepository.get_pending_for_shift(session, request.shift_id):
                if other.id != request.id:
                    other.status = RequestStatus.REJECTED
                    other.admin_notes = "Shift assigned to another staff member"
                    other.responded_at = now
                    other.responded_by = actor.user_id

        request.status = RequestStatus.APPROVED if approve else RequestStatus.REJECTED
        request.admin_notes = admin_notes
        request.responded_at = now
        request.responded_by = actor.user_id
        session.commit()
        session.refresh(request)
        return request

    @staticmethod
    def list_requests(session: Session, actor: Actor, status: Optional[str] = None) -> List[ShiftRequest]:
        """All requests of the actor's company (admin only)."""
        require_admin(actor, "list shift requests")
        if status is not None and status not in RequestStatus.ALL:
            raise ValidationError(f"Unknown request status {status!r}")
        return ShiftRequestRepository.get_all(session, company_id=actor.company_id, status=status)

    @staticmethod
    def my_requests(session: Session, actor: Actor) -> List[ShiftRequest]:
        return ShiftRequestRepository.get_by_user(session, actor.user_id)
