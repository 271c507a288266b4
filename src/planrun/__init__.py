"""Command line orchestration for running test plans."""
from __future__ import annotations

from planrun._errors import ArgumentError, PlanLoadError, PlanrunError
from planrun._exit import ExitStatus, exit_status_for
from planrun._orchestrator import RunContext, RunOrchestrator, RunRequest
from planrun._verdict import Verdict

__all__ = [
    "ArgumentError",
    "ExitStatus",
    "PlanLoadError",
    "PlanrunError",
    "RunContext",
    "RunOrchestrator",
    "RunRequest",
    "Verdict",
    "exit_status_for",
]
