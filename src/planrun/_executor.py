from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from planrun._schema import (
    MetadataRecord,
    Plan,
    PlanStep,
    RunFinished,
    RunStarted,
    StepFinished,
)
from planrun._verdict import Verdict, worst
from planrun.listeners import ResultListener

logger = logging.getLogger(__name__)


@runtime_checkable
class PlanRunner(Protocol):
    def run(
        self,
        plan: Plan,
        metadata: list[MetadataRecord],
        cancel: threading.Event,
        listeners: list[ResultListener],
    ) -> Verdict: ...


@runtime_checkable
class Clock(Protocol):
    def monotonic(self) -> float: ...
    def sleep(self, seconds: float) -> None: ...


class WallClock:
    """Production clock using time.monotonic / time.sleep."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


@runtime_checkable
class Process(Protocol):
    def poll(self) -> int | None: ...
    def kill(self) -> None: ...
    def wait(self, timeout: float | None = None) -> int: ...


@dataclass
class StepExit:
    returncode: int
    reason: str | None  # None, "timeout" or "cancelled"
    elapsed: float


def monitor_step(
    proc: Process,
    *,
    timeout_sec: float | None,
    cancel: threading.Event,
    clock: Clock,
    poll_interval: float = 0.1,
) -> StepExit:
    """Wait for a step process, killing it on timeout or cancellation."""
    start = clock.monotonic()
    while True:
        returncode = proc.poll()
        elapsed = clock.monotonic() - start
        if returncode is not None:
            return StepExit(returncode, None, elapsed)

        if cancel.is_set():
            return StepExit(_kill(proc), "cancelled", elapsed)

        if timeout_sec is not None and elapsed >= timeout_sec:
            return StepExit(_kill(proc), "timeout", elapsed)

        clock.sleep(poll_interval)


def _kill(proc: Process) -> int:
    proc.kill()
    try:
        return proc.wait(timeout=5.0)
    except Exception:
        return -9


def _notify(listeners: list[ResultListener], hook: str, event: BaseModel) -> None:
    for listener in listeners:
        try:
            getattr(listener, hook)(event)
        except Exception as exc:
            logger.warning("Result listener '%s' failed in %s: %s", listener.name, hook, exc)


class SubprocessPlanRunner:
    """Runs each enabled plan step as a command in a subprocess.

    Step arguments are formatted with the plan's parameter values, so
    ``"{host}"`` becomes the value of the ``host`` parameter. The plan verdict
    is the worst step verdict.
    """

    def __init__(
        self,
        *,
        interactive: bool = True,
        clock: Clock | None = None,
        poll_interval: float = 0.1,
        popen: Callable[..., Any] = subprocess.Popen,
    ) -> None:
        self.interactive = interactive
        self.clock = clock or WallClock()
        self.poll_interval = poll_interval
        self._popen = popen

    def run(
        self,
        plan: Plan,
        metadata: list[MetadataRecord],
        cancel: threading.Event,
        listeners: list[ResultListener],
    ) -> Verdict:
        run_start = time.time()
        _notify(
            listeners,
            "on_run_started",
            RunStarted(plan=plan.name, start=run_start, metadata=metadata),
        )

        verdicts: list[Verdict] = []
        for step in plan.steps:
            if not step.enabled:
                continue
            if cancel.is_set():
                logger.warning("Run cancelled; remaining steps are skipped.")
                verdicts.append(Verdict.ABORTED)
                break
            result = self._run_step(plan, step, cancel)
            logger.info("Step '%s' completed: %s", step.name, result.verdict.value)
            verdicts.append(result.verdict)
            _notify(listeners, "on_step_finished", result)

        verdict = worst(verdicts)
        run_stop = time.time()
        _notify(
            listeners,
            "on_run_finished",
            RunFinished(
                plan=plan.name,
                verdict=verdict,
                start=run_start,
                stop=run_stop,
                duration=run_stop - run_start,
            ),
        )
        return verdict

    def _run_step(self, plan: Plan, step: PlanStep, cancel: threading.Event) -> StepFinished:
        start = time.time()

        def finish(
            verdict: Verdict, returncode: int | None = None, detail: str | None = None
        ) -> StepFinished:
            stop = time.time()
            return StepFinished(
                plan=plan.name,
                step=step.name,
                verdict=verdict,
                start=start,
                stop=stop,
                duration=stop - start,
                returncode=returncode,
                detail=detail,
            )

        substitutions = plan.substitutions()
        try:
            args = [arg.format_map(substitutions) for arg in step.command]
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            return finish(Verdict.ERROR, detail=f"Unable to format command: {exc!r}")

        stdin = None if self.interactive else subprocess.DEVNULL
        try:
            proc = self._popen(args, stdin=stdin)
        except OSError as exc:
            return finish(Verdict.ERROR, detail=f"Unable to start '{args[0]}': {exc}")

        exit_ = monitor_step(
            proc,
            timeout_sec=step.timeout_sec,
            cancel=cancel,
            clock=self.clock,
            poll_interval=self.poll_interval,
        )
        if exit_.reason == "cancelled":
            return finish(Verdict.ABORTED, exit_.returncode, "Cancelled while running")
        if exit_.reason == "timeout":
            return finish(
                Verdict.ERROR,
                exit_.returncode,
                f"Exceeded timeout of {step.timeout_sec:.1f}s",
            )
        if exit_.returncode == 0:
            return finish(Verdict.PASS, 0)
        if exit_.returncode in step.inconclusive_codes:
            return finish(Verdict.INCONCLUSIVE, exit_.returncode)
        return finish(
            Verdict.FAIL, exit_.returncode, f"Exited with code {exit_.returncode}"
        )
