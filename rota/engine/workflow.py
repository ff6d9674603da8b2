"""Draft -> Previewed -> Committed workflow around the AutoScheduler."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from rota.errors import ConflictError
from rota.services.access import Actor

from .orchestrator import AutoScheduler, AutoScheduleRequest, AutoScheduleResponse


class WorkflowState:
    DRAFT = "draft"
    PREVIEWED = "previewed"
    COMMITTED = "committed"


class ScheduleWorkflow:
    """
    Explicit state for the preview-then-confirm scheduling flow.

    - ``edit`` is allowed until the run is committed and sends it back to draft
    - ``preview`` is allowed from draft or previewed (re-preview)
    - ``commit`` is only allowed after a preview, and only once

    Commit re-runs the planner against current data, so seats taken since the
    preview show up as failures rather than double bookings.
    """

    def __init__(self, scheduler: AutoScheduler, actor: Actor, request: Optional[AutoScheduleRequest] = None):
        self.scheduler = scheduler
        self.actor = actor
        self.request = request or AutoScheduleRequest(algorithm=scheduler.cfg.default_algorithm)
        self.state = WorkflowState.DRAFT
        self.preview_response: Optional[AutoScheduleResponse] = None
        self.commit_response: Optional[AutoScheduleResponse] = None

    def _require(self, *states: str, action: str) -> None:
        if self.state not in states:
            raise ConflictError(f"Cannot {action} a schedule in state '{self.state}'")

    def edit(self, **changes) -> AutoScheduleRequest:
        """Replace request fields; the previous preview is discarded."""
        self._require(WorkflowState.DRAFT, WorkflowState.PREVIEWED, action="edit")
        self.request = dataclasses.replace(self.request, **changes)
        self.state = WorkflowState.DRAFT
        self.preview_response = None
        return self.request

    def preview(self, session: Session, now: Optional[datetime] = None) -> AutoScheduleResponse:
        self._require(WorkflowState.DRAFT, WorkflowState.PREVIEWED, action="preview")
        self.preview_response = self.scheduler.preview(session, self.actor, self.request, now)
        self.state = WorkflowState.PREVIEWED
        return self.preview_response

    def commit(self, session: Session, now: Optional[datetime] = None) -> AutoScheduleResponse:
        self._require(WorkflowState.PREVIEWED, action="commit")
        request = dataclasses.replace(self.request, auto_create_shifts=True)
        self.commit_response = self.scheduler.commit(session, self.actor, request, now)
        self.state = WorkflowState.COMMITTED
        return self.commit_response
