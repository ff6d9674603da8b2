"""Bulk deletion of shifts by calendar period."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from rota.domain.repositories import ShiftRepository
from rota.domain.selectors import BulkDeleteSelector
from rota.errors import ValidationError
from rota.timewindow import RELATIVE_PERIODS, day_key, iso_week_key, month_key, to_utc, utc_now

from .access import Actor, require_admin


def selector_for_period(period: str, now: Optional[datetime] = None) -> BulkDeleteSelector:
    """
    Resolve ``today``/``week``/``month`` relative to ``now`` into a selector.

    Uses the same key functions that tag shifts on write, so the deleted set
    is exactly the set listed under that day/week/month.
    """
    now = to_utc(now) if now else utc_now()
    if period == "today":
        return BulkDeleteSelector(day=day_key(now))
    if period == "week":
        return BulkDeleteSelector(week=iso_week_key(now))
    if period == "month":
        return BulkDeleteSelector(month=month_key(now))
    raise ValidationError(f"Unknown period {period!r}; expected one of {', '.join(RELATIVE_PERIODS)}")


class BulkDeletionService:
    """Admin-only deletion of every shift in a day, ISO week or month."""

    @staticmethod
    def delete(
        session: Session,
        actor: Actor,
        selector: BulkDeleteSelector,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        """
        Delete the actor's company shifts matching ``selector``.

        Args:
            session: Database session
            actor: Caller; must be an admin
            selector: Day, week or month key
            user_id: Optionally only this staff member's shifts
            status: Optionally only shifts in this status

        Returns:
            ``{"deleted_count": n}``
        """
        require_admin(actor, "bulk delete shifts")
        count = ShiftRepository.bulk_delete(
            session, selector, company_id=actor.company_id, user_id=user_id, status=status
        )
        print(f"[INFO] Bulk delete {selector.to_dict()} for company {actor.company_id}: {count} shifts removed")
        return {"deleted_count": count}

    @staticmethod
    def delete_period(
        session: Session,
        actor: Actor,
        period: str,
        now: Optional[datetime] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        """Delete the current day/week/month (relative to ``now``)."""
        selector = selector_for_period(period, now)
        return BulkDeletionService.delete(session, actor, selector, user_id=user_id, status=status)
