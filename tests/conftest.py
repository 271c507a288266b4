from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from planrun._schema import MetadataRecord, Plan, RunFinished, RunStarted, StepFinished
from planrun._verdict import Verdict
from planrun.listeners import ResultListener

# Deterministic epoch timestamps.
FIXED_START = 1735689600.0  # 2025-01-01T00:00:00 UTC
FIXED_STOP = 1735689600.005  # 5ms later

SAMPLE_PLAN: dict[str, Any] = {
    "name": "Smoke",
    "parameters": [
        {"name": "delay", "value": "1.0"},
        {
            "name": "band",
            "selected_values": ["A", "B"],
            "available_values": ["A", "B", "C"],
        },
    ],
    "steps": [{"name": "noop", "command": ["true"]}],
}


class RecordingListener(ResultListener):
    def __init__(self, name: str, enabled: bool = True) -> None:
        super().__init__(name, enabled)
        self.events: list[RunStarted | StepFinished | RunFinished] = []

    def describe(self) -> str:
        return f"records events for {self.name}"

    def on_run_started(self, event: RunStarted) -> None:
        self.events.append(event)

    def on_step_finished(self, event: StepFinished) -> None:
        self.events.append(event)

    def on_run_finished(self, event: RunFinished) -> None:
        self.events.append(event)


class FakeRunner:
    """PlanRunner returning a fixed verdict and recording its calls."""

    def __init__(self, verdict: Verdict = Verdict.PASS) -> None:
        self.verdict = verdict
        self.calls: list[tuple[Plan, list[MetadataRecord], threading.Event, list[ResultListener]]] = []

    def run(
        self,
        plan: Plan,
        metadata: list[MetadataRecord],
        cancel: threading.Event,
        listeners: list[ResultListener],
    ) -> Verdict:
        self.calls.append((plan, metadata, cancel, listeners))
        return self.verdict


class FakeHandle:
    def join(self, timeout: float | None = None) -> None:
        pass

    def done(self) -> bool:
        return True


class FakeDiscovery:
    def __init__(self) -> None:
        self.directories: list[Path] = []
        self.searches = 0

    def search_async(self) -> FakeHandle:
        self.searches += 1
        return FakeHandle()


@pytest.fixture(autouse=True)
def _reset_planrun_logger() -> Iterator[None]:
    # The CLI installs its own handler and stops propagation; undo that so
    # caplog keeps working across tests.
    yield
    root = logging.getLogger("planrun")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True


@pytest.fixture()
def write_plan(tmp_path: Path) -> Callable[..., Path]:
    def _write(data: dict[str, Any] | None = None, name: str = "plan.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(SAMPLE_PLAN if data is None else data), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def plan_file(write_plan: Callable[..., Path]) -> Path:
    return write_plan()
