"""Repository classes for data access.

Every write goes through these methods, and every write re-checks the Shift
invariants regardless of what the caller validated.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm.exc import StaleDataError

from rota.errors import ConflictError, NotFoundError, ValidationError
from rota.timewindow import day_key, iso_week_key, month_key, to_utc, utc_now

from .models import Base, RequestStatus, Role, RoleShift, Shift, ShiftRequest, ShiftStatus, ShiftType
from .selectors import BulkDeleteSelector

# Fields an edit may change; lifecycle bookkeeping is owned by the repository
UPDATABLE_FIELDS = {
    "title",
    "description",
    "start_time",
    "end_time",
    "type",
    "user_id",
    "status",
    "location",
    "location_address",
    "latitude",
    "longitude",
    "color_hex",
    "role_id",
    "role_shift_id",
}


class DatabaseManager:
    """Owns the engine and hands out sessions for one roster database."""

    def __init__(self, db_url: str = "sqlite:///rota.db", echo: bool = False):
        """
        Args:
            db_url: SQLAlchemy database URL (default: sqlite:///rota.db)
            echo: Log emitted SQL
        """
        self.db_url = db_url
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            self.engine = create_engine(
                db_url, echo=echo, connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        else:
            self.engine = create_engine(db_url, echo=echo)
        self.SessionLocal = sessionmaker(bind=self.engine)

    @classmethod
    def from_config(cls, cfg) -> "DatabaseManager":
        return cls(cfg.db_url)

    def create_tables(self):
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def reset(self):
        """Drop and recreate every table (deletes all data)."""
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)
        print(f"[WARN] Database reset: {self.db_url}")

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that is rolled back on error and always closed."""
        session = self.SessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class ShiftRepository:
    """Repository for shift data access."""

    @staticmethod
    def tag_period_keys(shift: Shift) -> None:
        """Derive day/week/month keys from the shift's UTC start time."""
        shift.day_key = day_key(shift.start_time)
        shift.week_key = iso_week_key(shift.start_time)
        shift.month_key = month_key(shift.start_time)

    @staticmethod
    def get_by_id(session: Session, shift_id: str) -> Optional[Shift]:
        """Get shift by ID."""
        return session.get(Shift, shift_id)

    @staticmethod
    def get(session: Session, shift_id: str) -> Shift:
        """Get shift by ID or raise NotFoundError."""
        shift = session.get(Shift, shift_id)
        if shift is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        return shift

    @staticmethod
    def query(
        session: Session,
        start: Union[str, datetime],
        end: Union[str, datetime],
        company_id: Optional[str] = None,
        user_id: Optional[str] = None,
        shift_type: Optional[str] = None,
    ) -> List[Shift]:
        """
        Get shifts starting in the half-open range ``[start, end)``.

        Args:
            session: Database session
            start: Inclusive lower bound
            end: Exclusive upper bound
            company_id: Optional company scope
            user_id: Optional owner scope
            shift_type: Optional type (assigned/open)

        Returns:
            Shifts ordered by start time
        """
        start, end = to_utc(start), to_utc(end)
        if end < start:
            raise ValidationError(f"Query range end {end} is before start {start}")

        q = session.query(Shift).filter(Shift.start_time >= start, Shift.start_time < end)
        if company_id is not None:
            q = q.filter(Shift.company_id == company_id)
        if user_id is not None:
            q = q.filter(Shift.user_id == user_id)
        if shift_type is not None:
            q = q.filter(Shift.type == shift_type)
        return q.order_by(Shift.start_time, Shift.id).all()

    @staticmethod
    def get_bookings(
        session: Session,
        user_ids: Iterable[str],
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> List[Shift]:
        """Non-cancelled assigned shifts of the given staff that overlap ``[start, end)``."""
        user_ids = list(user_ids)
        if not user_ids:
            return []
        q = session.query(Shift).filter(
            Shift.user_id.in_(user_ids),
            Shift.type == ShiftType.ASSIGNED,
            Shift.status != ShiftStatus.CANCELLED,
            Shift.start_time < end,
            Shift.end_time > start,
        )
        if exclude_id is not None:
            q = q.filter(Shift.id != exclude_id)
        return q.order_by(Shift.start_time).all()

    @staticmethod
    def _normalize(shift: Shift) -> None:
        if shift.start_time is not None:
            shift.start_time = to_utc(shift.start_time)
        if shift.end_time is not None:
            shift.end_time = to_utc(shift.end_time)
        if shift.type is None:
            shift.type = ShiftType.ASSIGNED if shift.user_id else ShiftType.OPEN
        if shift.status is None:
            shift.status = ShiftStatus.OPEN if shift.type == ShiftType.OPEN else ShiftStatus.SCHEDULED

    @staticmethod
    def _check_double_booking(session: Session, shift: Shift) -> None:
        if shift.type != ShiftType.ASSIGNED or shift.status == ShiftStatus.CANCELLED:
            return
        clashes = ShiftRepository.get_bookings(
            session, [shift.user_id], shift.start_time, shift.end_time, exclude_id=shift.id
        )
        if clashes:
            other = clashes[0]
            raise ConflictError(
                f"Staff {shift.user_id} is already booked on shift {other.id} "
                f"({other.start_time.isoformat()} - {other.end_time.isoformat()})"
            )

    @staticmethod
    def create(session: Session, shift: Shift, max_shift_hours: int = 24) -> Shift:
        """
        Create a new shift.

        Raises:
            ValidationError: If the shift breaks an invariant
            ConflictError: On double booking or when its pattern seat is already filled
        """
        from rota.services.constraints import validate_shift

        ShiftRepository._normalize(shift)
        validate_shift(shift, max_shift_hours)
        ShiftRepository.tag_period_keys(shift)
        ShiftRepository._check_double_booking(session, shift)

        session.add(shift)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise ConflictError(
                f"Seat already filled for pattern {shift.role_shift_id} at {shift.start_time.isoformat()}"
                if shift.role_shift_id
                else f"Shift could not be stored: {e.orig}"
            ) from e
        session.refresh(shift)
        return shift

    @staticmethod
    def update(
        session: Session,
        shift_id: str,
        changes: Dict[str, Any],
        max_shift_hours: int = 24,
    ) -> Shift:
        """
        Apply a partial update to a shift.

        Assigning a user to an open shift turns it into a scheduled assigned
        shift; clearing the user turns it back into an open shift.

        Raises:
            NotFoundError: Unknown shift id
            ValidationError: Unknown field or a broken invariant
            ConflictError: Disallowed status move, double booking or a concurrent edit
        """
        from rota.services.constraints import assert_transition, validate_shift

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        shift = ShiftRepository.get(session, shift_id)
        previous_status = shift.status

        try:
            for name, value in changes.items():
                if name in ("start_time", "end_time") and value is not None:
                    value = to_utc(value)
                setattr(shift, name, value)

            if "user_id" in changes and "type" not in changes:
                if shift.user_id and shift.type == ShiftType.OPEN:
                    shift.type = ShiftType.ASSIGNED
                    if "status" not in changes and shift.status == ShiftStatus.OPEN:
                        shift.status = ShiftStatus.SCHEDULED
                elif not shift.user_id and shift.type == ShiftType.ASSIGNED:
                    shift.type = ShiftType.OPEN
                    if "status" not in changes and shift.status == ShiftStatus.SCHEDULED:
                        shift.status = ShiftStatus.OPEN

            if shift.status != previous_status:
                assert_transition(previous_status, shift.status)
            validate_shift(shift, max_shift_hours)
            ShiftRepository.tag_period_keys(shift)
            ShiftRepository._check_double_booking(session, shift)
            session.commit()
        except (ValidationError, ConflictError):
            session.rollback()
            raise
        except (StaleDataError, IntegrityError) as e:
            session.rollback()
            raise ConflictError(f"Shift {shift_id} was changed concurrently or clashes with another seat") from e
        session.refresh(shift)
        return shift

    @staticmethod
    def transition_status(
        session: Session,
        shift_id: str,
        expected: Union[str, Sequence[str]],
        new_status: str,
        criteria: Sequence[Any] = (),
        **values: Any,
    ) -> Shift:
        """
        Compare-and-swap the status of one shift.

        The status only changes if it still is one of ``expected`` (and any
        extra ``criteria`` hold) at write time, so two concurrent callers
        cannot both win.

        Raises:
            NotFoundError: Unknown shift id
            ConflictError: The shift is no longer in an expected state
        """
        expected = (expected,) if isinstance(expected, str) else tuple(expected)
        values.update(status=new_status, version=Shift.version + 1, updated_at=utc_now())

        count = (
            session.query(Shift)
            .filter(Shift.id == shift_id, Shift.status.in_(expected), *criteria)
            .update(values, synchronize_session=False)
        )
        if count == 0:
            session.rollback()
            current = ShiftRepository.get(session, shift_id)
            raise ConflictError(
                f"Shift {shift_id} is '{current.status}', expected {' or '.join(repr(s) for s in expected)}"
            )
        session.commit()
        return session.get(Shift, shift_id, populate_existing=True)

    @staticmethod
    def delete(session: Session, shift_id: str) -> None:
        """Delete a shift and its claim requests."""
        shift = ShiftRepository.get(session, shift_id)
        session.delete(shift)
        session.commit()

    @staticmethod
    def bulk_delete(
        session: Session,
        selector: BulkDeleteSelector,
        company_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> int:
        """
        Delete every shift whose period key matches the selector.

        Returns:
            Number of deleted shifts
        """
        column = getattr(Shift, selector.column)
        q = session.query(Shift.id).filter(column == selector.key)
        if company_id is not None:
            q = q.filter(Shift.company_id == company_id)
        if user_id is not None:
            q = q.filter(Shift.user_id == user_id)
        if status is not None:
            q = q.filter(Shift.status == status)
        shift_ids = [row.id for row in q.all()]

        if not shift_ids:
            return 0

        session.query(ShiftRequest).filter(ShiftRequest.shift_id.in_(shift_ids)).delete(synchronize_session=False)
        count = session.query(Shift).filter(Shift.id.in_(shift_ids)).delete(synchronize_session=False)
        session.commit()
        return count


class RoleRepository:
    """Repository for role template data access."""

    @staticmethod
    def get_all(session: Session, company_id: Optional[str] = None) -> List[Role]:
        """Get all roles, optionally for one company."""
        q = session.query(Role)
        if company_id is not None:
            q = q.filter(Role.company_id == company_id)
        return q.order_by(Role.position, Role.title).all()

    @staticmethod
    def get_active(session: Session, company_id: Optional[str] = None) -> List[Role]:
        """Get active roles."""
        return [role for role in RoleRepository.get_all(session, company_id) if role.is_active]

    @staticmethod
    def get(session: Session, role_id: str) -> Role:
        role = session.get(Role, role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def create(session: Session, role: Role) -> Role:
        """Create a new role with its patterns."""
        if not role.title or not role.company_id:
            raise ValidationError("Roles need a title and a company_id")
        for pattern in role.shifts:
            if pattern.required_staff is not None and pattern.required_staff < 1:
                raise ValidationError(f"Pattern '{pattern.name}' must require at least one staff member")
        session.add(role)
        session.commit()
        session.refresh(role)
        return role

    @staticmethod
    def get_pattern(session: Session, role_shift_id: str) -> RoleShift:
        pattern = session.get(RoleShift, role_shift_id)
        if pattern is None:
            raise NotFoundError(f"Role shift pattern {role_shift_id} not found")
        return pattern

    @staticmethod
    def add_pattern(session: Session, role_id: str, pattern: RoleShift) -> RoleShift:
        role = RoleRepository.get(session, role_id)
        role.shifts.append(pattern)
        session.commit()
        session.refresh(pattern)
        return pattern

    @staticmethod
    def delete(session: Session, role_id: str) -> None:
        session.delete(RoleRepository.get(session, role_id))
        session.commit()


class ShiftRequestRepository:
    """Repository for open-shift claim requests."""

    @staticmethod
    def get(session: Session, request_id: str) -> ShiftRequest:
        request = session.get(ShiftRequest, request_id)
        if request is None:
            raise NotFoundError(f"Shift request {request_id} not found")
        return request

    @staticmethod
    def get_all(
        session: Session,
        company_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[ShiftRequest]:
        q = session.query(ShiftRequest)
        if company_id is not None:
            q = q.filter(ShiftRequest.company_id == company_id)
        if status is not None:
            q = q.filter(ShiftRequest.status == status)
        return q.order_by(ShiftRequest.created_at).all()

    @staticmethod
    def get_by_user(session: Session, user_id: str) -> List[ShiftRequest]:
        return (
            session.query(ShiftRequest)
            .filter(ShiftRequest.user_id == user_id)
            .order_by(ShiftRequest.created_at)
            .all()
        )

    @staticmethod
    def get_pending_for_shift(session: Session, shift_id: str) -> List[ShiftRequest]:
        return (
            session.query(ShiftRequest)
            .filter(ShiftRequest.shift_id == shift_id, ShiftRequest.status == RequestStatus.PENDING)
            .order_by(ShiftRequest.created_at)
            .all()
        )

    @staticmethod
    def create(session: Session, request: ShiftRequest) -> ShiftRequest:
        session.add(request)
        session.commit()
        session.refresh(request)
        return request
