"""SQLAlchemy models for the roster engine."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, relationship

from rota.timewindow import utc_now


def _new_id() -> str:
    return uuid.uuid4().hex


class ShiftStatus:
    """Shift lifecycle states."""

    SCHEDULED = "scheduled"
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    LATE = "late"
    COMPLETED = "completed"
    COMPLETED_EARLY = "completed-early"
    COMPLETED_OVERTIME = "completed-overtime"
    CANCELLED = "cancelled"

    ALL = (SCHEDULED, OPEN, IN_PROGRESS, LATE, COMPLETED, COMPLETED_EARLY, COMPLETED_OVERTIME, CANCELLED)
    COMPLETED_STATES = (COMPLETED, COMPLETED_EARLY, COMPLETED_OVERTIME)


class ShiftType:
    ASSIGNED = "assigned"
    OPEN = "open"

    ALL = (ASSIGNED, OPEN)


class RequestStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = (PENDING, APPROVED, REJECTED)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Shift(Base):
    """A scheduled unit of work, optionally materialized from a RoleShift seat."""

    __tablename__ = "shifts"
    __table_args__ = (
        # One materialized record per pattern seat and start time
        UniqueConstraint("role_shift_id", "start_time", "seat", name="uq_shift_seat"),
    )

    id = Column(String(32), primary_key=True, default=_new_id)
    company_id = Column(String(64), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    start_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    end_time = Column(DateTime, nullable=False)  # naive UTC

    type = Column(String(10), nullable=False, default=ShiftType.ASSIGNED)
    user_id = Column(String(64), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=ShiftStatus.SCHEDULED)

    location = Column(String(200), nullable=True)
    location_address = Column(String(300), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Template lineage (no FK: editing a template never touches materialized shifts)
    role_id = Column(String(64), nullable=True)
    role_shift_id = Column(String(64), nullable=True)
    seat = Column(Integer, nullable=True)

    color_hex = Column(String(9), nullable=True)
    created_by = Column(String(64), nullable=True)

    # Period tags derived from start_time
    day_key = Column(String(10), nullable=False, index=True)  # 2025-03-01
    week_key = Column(String(8), nullable=False, index=True)  # 2025-W09
    month_key = Column(String(7), nullable=False, index=True)  # 2025-03

    # Attendance
    actual_start = Column(DateTime, nullable=True)
    actual_end = Column(DateTime, nullable=True)
    clock_in_latitude = Column(Float, nullable=True)
    clock_in_longitude = Column(Float, nullable=True)
    clock_out_latitude = Column(Float, nullable=True)
    clock_out_longitude = Column(Float, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)
    version = Column(Integer, nullable=False)

    requests = relationship("ShiftRequest", back_populates="shift", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "type": self.type,
            "user_id": self.user_id,
            "status": self.status,
            "location": {
                "name": self.location,
                "address": self.location_address,
                "latitude": self.latitude,
                "longitude": self.longitude,
            },
            "role_id": self.role_id,
            "role_shift_id": self.role_shift_id,
            "seat": self.seat,
            "color_hex": self.color_hex,
            "actual_start": self.actual_start.isoformat() if self.actual_start else None,
            "actual_end": self.actual_end.isoformat() if self.actual_end else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Shift(id={self.id}, start={self.start_time}, user={self.user_id}, status='{self.status}')>"


class Role(Base):
    """Job-function template owning recurring RoleShift patterns."""

    __tablename__ = "roles"

    id = Column(String(64), primary_key=True, default=_new_id)
    company_id = Column(String(64), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    qualified_users = Column(JSON, nullable=False, default=list)  # staff ids
    default_break_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    shifts = relationship(
        "RoleShift",
        back_populates="role",
        cascade="all, delete-orphan",
        order_by="RoleShift.start_time",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, title='{self.title}', patterns={len(self.shifts)})>"


class RoleShift(Base):
    """Weekly recurring pattern: weekday + HH:MM range + seat count."""

    __tablename__ = "role_shifts"

    id = Column(String(64), primary_key=True, default=_new_id)
    role_id = Column(String(64), ForeignKey("roles.id"), nullable=False)
    name = Column(String(100), nullable=False)
    start_day = Column(String(10), nullable=False)  # monday..sunday
    end_day = Column(String(10), nullable=False)  # differs from start_day for overnight
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    location_id = Column(String(64), nullable=True)
    required_staff = Column(Integer, nullable=False, default=1)
    tasks = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    role = relationship("Role", back_populates="shifts")

    def __repr__(self) -> str:
        return (
            f"<RoleShift(id={self.id}, name='{self.name}', {self.start_day} {self.start_time}"
            f" - {self.end_day} {self.end_time}, staff={self.required_staff})>"
        )


class ShiftRequest(Base):
    """A staff member's request to claim an open shift."""

    __tablename__ = "shift_requests"

    id = Column(String(32), primary_key=True, default=_new_id)
    shift_id = Column(String(32), ForeignKey("shifts.id"), nullable=False, index=True)
    company_id = Column(String(64), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(10), nullable=False, default=RequestStatus.PENDING)
    staff_notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    responded_at = Column(DateTime, nullable=True)
    responded_by = Column(String(64), nullable=True)

    shift = relationship("Shift", back_populates="requests")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "user_id": self.user_id,
            "status": self.status,
            "staff_notes": self.staff_notes,
            "admin_notes": self.admin_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "responded_at": self.responded_at.isoformat() if self.responded_at else None,
            "responded_by": self.responded_by,
        }

    def __repr__(self) -> str:
        return f"<ShiftRequest(id={self.id}, shift={self.shift_id}, user={self.user_id}, status='{self.status}')>"
