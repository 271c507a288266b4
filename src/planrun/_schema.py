from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, PrivateAttr, TypeAdapter

from planrun._verdict import Verdict

logger = logging.getLogger(__name__)

MULTI_VALUE_SEPARATOR = "|"


class MetadataRecord(BaseModel):
    namespace: str = ""
    key: str
    value: str
    is_metadata: Literal[True] = True


class PlanParameter(BaseModel):
    """An external plan parameter that can be overridden at run time."""

    name: str
    value: str = ""
    # Set for multi-valued parameters; ``value`` is unused in that case.
    selected_values: list[str] | None = None
    available_values: list[str] | None = None

    @property
    def is_multi_valued(self) -> bool:
        return self.selected_values is not None

    def set_value(self, value: str) -> None:
        if self.is_multi_valued:
            self.selected_values = [
                v.strip() for v in value.split(MULTI_VALUE_SEPARATOR) if v.strip()
            ]
        else:
            self.value = value

    def display_value(self) -> str:
        if self.selected_values is not None:
            return f" {MULTI_VALUE_SEPARATOR} ".join(self.selected_values)
        return self.value

    def substitution_value(self) -> str:
        """Value used when formatting step commands."""
        if self.selected_values is not None:
            return ",".join(self.selected_values)
        return self.value


class PlanStep(BaseModel):
    name: str
    command: list[str] = Field(min_length=1)
    enabled: bool = True
    timeout_sec: float | None = None
    inconclusive_codes: list[int] = Field(default_factory=list)


class Plan(BaseModel):
    name: str = "Untitled"
    parameters: list[PlanParameter] = Field(default_factory=list)
    steps: list[PlanStep] = Field(default_factory=list)

    _path: Path | None = PrivateAttr(default=None)
    _raw: str | None = PrivateAttr(default=None)

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def raw(self) -> str | None:
        """Serialized form the plan was loaded from, if it was cached."""
        return self._raw

    def get_parameter(self, name: str) -> PlanParameter | None:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def substitutions(self) -> dict[str, str]:
        return {p.name: p.substitution_value() for p in self.parameters}


# ---- run events, as delivered to result listeners ----


class RunStarted(BaseModel):
    type: Literal["run_started"] = "run_started"
    plan: str
    start: float
    metadata: list[MetadataRecord] = Field(default_factory=list)


class StepFinished(BaseModel):
    type: Literal["step_finished"] = "step_finished"
    plan: str
    step: str
    verdict: Verdict
    start: float
    stop: float
    duration: float
    returncode: int | None = None
    detail: str | None = None


class RunFinished(BaseModel):
    type: Literal["run_finished"] = "run_finished"
    plan: str
    verdict: Verdict
    start: float
    stop: float
    duration: float


RunEvent = Annotated[
    Union[RunStarted, StepFinished, RunFinished], Field(discriminator="type")
]
_event_adapter: TypeAdapter[RunEvent] = TypeAdapter(RunEvent)


def read_events(path: Path) -> list[RunEvent]:
    """Read a JSONL events file, skipping malformed/truncated lines."""
    events: list[RunEvent] = []
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return events

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            events.append(_event_adapter.validate_json(line))
        except Exception as exc:
            logger.warning("Skipping malformed line %d: %s", lineno, exc)

    return events
