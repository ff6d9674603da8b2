"""Caller identity and permission guards.

Identity comes from the integrating system's session layer; this module only
checks what it is told.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rota.errors import AuthorizationError


@dataclass(frozen=True)
class Actor:
    """Who is calling: a staff member or an admin of one company."""

    user_id: str
    company_id: str
    is_admin: bool = False
    name: Optional[str] = None


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise AuthorizationError(f"Only admins can {action}")


def require_same_company(actor: Actor, company_id: str) -> None:
    if actor.company_id != company_id:
        raise AuthorizationError(f"{actor.user_id} does not belong to company {company_id}")
