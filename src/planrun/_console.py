from __future__ import annotations

from rich.console import Console

from planrun._schema import Plan


def print_external_parameters(plan: Plan, console: Console | None = None) -> None:
    """Print every external parameter of a plan with its current value."""
    if console is None:
        console = Console()

    def out(line: str) -> None:
        console.print(line, markup=False, highlight=False, soft_wrap=True)

    out(f"Listing {len(plan.parameters)} External Test Plan Parameters:")
    for parameter in plan.parameters:
        out(f"  {parameter.name} = {parameter.display_value()}")
        if parameter.available_values is not None:
            out("    Available Values:")
            for value in parameter.available_values:
                out(f"      {value}")
