"""Scheduling engine: candidate materialization and assignment algorithms."""

from .balanced import BalancedAlgorithm
from .base import AssignmentContext, BaseAlgorithm, CandidateShift
from .coverage import CoverageAlgorithm
from .orchestrator import ALGORITHMS, AutoScheduleRequest, AutoScheduleResponse, AutoScheduler, get_algorithm
from .simple import SimpleAlgorithm
from .workflow import ScheduleWorkflow, WorkflowState

__all__ = [
    "BaseAlgorithm",
    "CandidateShift",
    "AssignmentContext",
    "SimpleAlgorithm",
    "BalancedAlgorithm",
    "CoverageAlgorithm",
    "ALGORITHMS",
    "get_algorithm",
    "AutoScheduleRequest",
    "AutoScheduleResponse",
    "AutoScheduler",
    "ScheduleWorkflow",
    "WorkflowState",
]
