"""Greedy online load balancing."""

from __future__ import annotations

from typing import List

from .base import AssignmentContext, BaseAlgorithm, CandidateShift


class BalancedAlgorithm(BaseAlgorithm):
    """
    Same eligibility as the simple algorithm, but each seat goes to the
    eligible staff member with the fewest assignments so far in this run.

    Ties are broken by ascending staff id. Counts are bumped as soon as a
    seat is booked, so later seats see the updated load.
    """

    name = "balanced"

    def assign(self, candidates: List[CandidateShift], context: AssignmentContext) -> None:
        for candidate in self.chronological(candidates):
            eligible = context.eligible(candidate)
            if not eligible:
                continue
            staff = min(eligible, key=lambda s: (context.counts[s.id], s.id))
            load = context.counts[staff.id]
            context.book(
                candidate,
                staff,
                f"Fewest shifts in this run ({load} before this one)",
            )
