from __future__ import annotations

from abc import ABC, abstractmethod

from planrun._schema import RunFinished, RunStarted, StepFinished


class ResultListener(ABC):
    """Abstract base class for sinks that receive plan run results."""

    def __init__(self, name: str, enabled: bool = True) -> None:
        self.name = name
        self.enabled = enabled

    def on_run_started(self, event: RunStarted) -> None:
        """Called once before the first step runs."""

    @abstractmethod
    def on_step_finished(self, event: StepFinished) -> None:
        """Called after each step completes."""

    def on_run_finished(self, event: RunFinished) -> None:
        """Called once after the last step."""

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable description shown in listener listings."""

    def __str__(self) -> str:
        return self.describe()
