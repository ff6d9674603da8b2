"""CP-SAT assignment that maximises filled seats across the whole run."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Tuple

from ortools.sat.python import cp_model

from rota.services.constraints import intervals_overlap

from .balanced import BalancedAlgorithm
from .base import AssignmentContext, BaseAlgorithm, CandidateShift


class CoverageAlgorithm(BaseAlgorithm):
    """
    Solve the whole run at once with OR-Tools CP-SAT.

    Greedy algorithms can strand a seat by giving an early shift to the only
    person qualified for a later, overlapping one. This model sees every seat
    together:

    - each seat gets at most one staff member
    - a staff member never holds two overlapping seats
    - per-run cap on seats per staff member (when configured)

    Objective: maximise filled seats first, then minimise the busiest staff
    member's load. The solver runs single-threaded with a fixed seed so the
    same input always yields the same roster.
    """

    name = "coverage"

    def __init__(self, time_limit_seconds: float = 10.0, random_seed: int = 42):
        self.time_limit_seconds = time_limit_seconds
        self.random_seed = random_seed

    def assign(self, candidates: List[CandidateShift], context: AssignmentContext) -> None:
        ordered = self.chronological(candidates)
        if not ordered:
            return

        model = cp_model.CpModel()
        choices = self._create_variables(model, ordered, context)
        if not choices:
            print("[INFO] CP-SAT: no eligible staff for any seat")
            return

        self._add_seat_constraints(model, choices, ordered)
        self._add_overlap_constraints(model, choices, ordered)
        loads = self._add_load_constraints(model, choices, context)
        self._build_objective(model, choices, loads, len(ordered))

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.time_limit_seconds
        solver.parameters.num_search_workers = 1
        solver.parameters.random_seed = self.random_seed

        status = solver.Solve(model)
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            print(f"[WARN] CP-SAT found no solution (status: {self._status_name(status)}); using balanced assignment")
            BalancedAlgorithm().assign(ordered, context)
            return

        print(f"[OK] CP-SAT solution found (status: {self._status_name(status)})")
        staff_lookup = {
            staff.id: staff for staff_list in context.qualified.values() for staff in staff_list
        }
        for idx, candidate in enumerate(ordered):
            for (c_idx, staff_id), var in choices.items():
                if c_idx == idx and solver.Value(var) == 1:
                    context.book(candidate, staff_lookup[staff_id], "Chosen by coverage optimiser")
                    break

    def _create_variables(
        self,
        model: cp_model.CpModel,
        ordered: List[CandidateShift],
        context: AssignmentContext,
    ) -> Dict[Tuple[int, str], cp_model.IntVar]:
        """One boolean per (seat index, eligible staff id)."""
        choices = {}
        for idx, candidate in enumerate(ordered):
            for staff in context.eligible(candidate):
                choices[(idx, staff.id)] = model.NewBoolVar(f"seat{idx}_staff{staff.id}")
        return choices

    def _add_seat_constraints(self, model, choices, ordered) -> None:
        by_seat = defaultdict(list)
        for (idx, _staff_id), var in choices.items():
            by_seat[idx].append(var)
        for variables in by_seat.values():
            model.Add(sum(variables) <= 1)

    def _add_overlap_constraints(self, model, choices, ordered) -> None:
        by_staff = defaultdict(list)
        for (idx, staff_id), var in choices.items():
            by_staff[staff_id].append((idx, var))

        for seats in by_staff.values():
            for i, (a_idx, a_var) in enumerate(seats):
                a = ordered[a_idx]
                for b_idx, b_var in seats[i + 1:]:
                    b = ordered[b_idx]
                    if intervals_overlap(a.start_time, a.end_time, b.start_time, b.end_time):
                        model.Add(a_var + b_var <= 1)

    def _add_load_constraints(self, model, choices, context: AssignmentContext) -> List[cp_model.IntVar]:
        """Per-staff seat count variables, capped when a cap is configured."""
        by_staff = defaultdict(list)
        for (_idx, staff_id), var in choices.items():
            by_staff[staff_id].append(var)

        loads = []
        for staff_id, variables in sorted(by_staff.items()):
            load = model.NewIntVar(0, len(variables), f"load_{staff_id}")
            model.Add(load == sum(variables))
            if context.max_shifts_per_staff is not None:
                remaining = context.max_shifts_per_staff - context.counts[staff_id]
                model.Add(load <= max(remaining, 0))
            loads.append(load)
        return loads

    def _build_objective(self, model, choices, loads, seat_count: int) -> None:
        # Filled seats dominate: one extra seat outweighs any change in max load.
        filled = sum(choices.values())
        max_load = model.NewIntVar(0, seat_count, "max_load")
        model.AddMaxEquality(max_load, loads)
        model.Maximize(filled * (seat_count + 1) - max_load)

    def _status_name(self, status: int) -> str:
        """Convert solver status to string."""
        status_map = {
            cp_model.OPTIMAL: "OPTIMAL",
            cp_model.FEASIBLE: "FEASIBLE",
            cp_model.INFEASIBLE: "INFEASIBLE",
            cp_model.MODEL_INVALID: "MODEL_INVALID",
            cp_model.UNKNOWN: "UNKNOWN",
        }
        return status_map.get(status, f"UNKNOWN({status})")
