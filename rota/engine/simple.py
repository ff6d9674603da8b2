"""First-fit assignment."""

from __future__ import annotations

from typing import List

from .base import AssignmentContext, BaseAlgorithm, CandidateShift


class SimpleAlgorithm(BaseAlgorithm):
    """
    Walks seats in chronological order and gives each one to the first
    eligible staff member in directory order. No load balancing.
    """

    name = "simple"

    def assign(self, candidates: List[CandidateShift], context: AssignmentContext) -> None:
        for candidate in self.chronological(candidates):
            eligible = context.eligible(candidate)
            if eligible:
                context.book(candidate, eligible[0], "First available qualified staff member")
