from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from planrun._schema import RunFinished, StepFinished
from planrun._verdict import Verdict
from planrun.listeners._base import ResultListener

_VERDICT_STYLES: dict[Verdict, str] = {
    Verdict.NOT_SET: "dim",
    Verdict.PASS: "green",
    Verdict.INCONCLUSIVE: "yellow",
    Verdict.FAIL: "red bold",
    Verdict.ABORTED: "yellow bold",
    Verdict.ERROR: "red bold",
}


def _make_summary_table(plan: str, steps: list[StepFinished], verdict: Verdict) -> Table:
    table = Table(title=f"Plan Results: {plan}", show_edge=False)
    table.add_column("Step", style="bold")
    table.add_column("Verdict")
    table.add_column("Duration", justify="right")

    total_duration = 0.0
    for step in steps:
        total_duration += step.duration
        style = _VERDICT_STYLES.get(step.verdict, "")
        table.add_row(
            step.step,
            Text(step.verdict.value, style=style),
            f"{step.duration:.2f}s",
        )

    table.add_section()
    table.add_row(
        "Plan",
        Text(verdict.value, style=_VERDICT_STYLES.get(verdict, "")),
        f"{total_duration:.2f}s",
    )
    return table


class ConsoleListener(ResultListener):
    """Prints a rich-formatted summary of the run to stderr."""

    def __init__(self, name: str = "Console", enabled: bool = True) -> None:
        super().__init__(name, enabled)
        self._steps: list[StepFinished] = []

    def describe(self) -> str:
        return "Summary table on stderr"

    def on_step_finished(self, event: StepFinished) -> None:
        self._steps.append(event)

    def on_run_finished(self, event: RunFinished) -> None:
        console = Console(stderr=True)

        if not self._steps:
            console.print("[yellow]No steps were run.[/yellow]")
        else:
            for step in self._steps:
                if step.detail and step.verdict.is_worse_than(Verdict.INCONCLUSIVE):
                    console.print(f"[red bold]{escape(step.step)}[/red bold]: {escape(step.detail)}")
            console.print(_make_summary_table(event.plan, self._steps, event.verdict))
        self._steps = []
