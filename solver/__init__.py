"""Solver-Modul: Backtracking-Heuristik und CP-SAT (Google OR-Tools)."""

from .backtracking import BacktrackingSolver
from .scheduler import ExactSolver
from .result import FailureKind, SolveResult
from .pinning import PinManager, PinnedLesson

__all__ = [
    "BacktrackingSolver",
    "ExactSolver",
    "FailureKind",
    "SolveResult",
    "PinManager",
    "PinnedLesson",
]
