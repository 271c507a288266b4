from __future__ import annotations

from pathlib import Path
from typing import IO

from pydantic import BaseModel

from planrun._schema import RunFinished, RunStarted, StepFinished
from planrun.listeners._base import ResultListener


class JsonlListener(ResultListener):
    """Writes one JSONL line per run event, flushing immediately."""

    def __init__(
        self,
        name: str = "JSONL",
        enabled: bool = True,
        path: Path = Path("planrun-results.jsonl"),
    ) -> None:
        super().__init__(name, enabled)
        self.path = path
        self._file: IO[str] | None = None

    def describe(self) -> str:
        return f"JSON lines written to {self.path}"

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def _write(self, event: BaseModel) -> None:
        assert self._file is not None
        self._file.write(event.model_dump_json() + "\n")
        self._file.flush()

    def on_run_started(self, event: RunStarted) -> None:
        self.open()
        self._write(event)

    def on_step_finished(self, event: StepFinished) -> None:
        self._write(event)

    def on_run_finished(self, event: RunFinished) -> None:
        self._write(event)
        self.close()
