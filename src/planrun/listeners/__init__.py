from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator
from typing import Any

from rich.console import Console

from planrun._errors import ArgumentError
from planrun.listeners._base import ResultListener
from planrun.listeners._console import ConsoleListener
from planrun.listeners._jsonl import JsonlListener

_REGISTRY: dict[str, type[ResultListener]] = {
    "console": ConsoleListener,
    "jsonl": JsonlListener,
}


def create_listener(kind: str, **options: Any) -> ResultListener:
    """Look up and instantiate a listener type by name."""
    cls = _REGISTRY.get(kind)
    if cls is None:
        available = ", ".join(sorted(_REGISTRY))
        raise ValueError(
            f"Unknown listener type {kind!r}. Available listener types: {available}"
        )
    return cls(**options)


class ListenerRegistry:
    """Ordered collection of the result listeners known to one run."""

    def __init__(self, listeners: Iterable[ResultListener] = ()) -> None:
        self._listeners: list[ResultListener] = list(listeners)

    def __iter__(self) -> Iterator[ResultListener]:
        return iter(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def enabled(self) -> list[ResultListener]:
        return [listener for listener in self._listeners if listener.enabled]


def default_registry() -> ListenerRegistry:
    return ListenerRegistry([ConsoleListener(enabled=True), JsonlListener(enabled=False)])


def select_listeners(
    selection: str, registry: ListenerRegistry, console: Console | None = None
) -> None:
    """Enable exactly the listeners named in a comma-separated list.

    Every listener is disabled first, so an empty selection disables all of
    them. Matching is case-insensitive and one name may enable several
    listeners. When any name matches nothing, the full listener state is
    printed and ArgumentError is raised without a message.
    """
    if console is None:
        console = Console()

    for listener in registry:
        listener.enabled = False

    unknown = [name for name in selection.split(",") if name]
    for name in list(unknown):
        found = False
        for listener in registry:
            if listener.name.lower() == name.lower():
                listener.enabled = True
                found = True
        if found:
            unknown.remove(name)

    if unknown:
        print(f"Unknown result listeners: {','.join(unknown)}", file=sys.stderr)
        console.print("Known result listeners are:", markup=False, highlight=False, soft_wrap=True)

    for listener in registry:
        mark = "x" if listener.enabled else " "
        console.print(
            f"[{mark}] {listener.name}:  {listener}",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )

    if unknown:
        raise ArgumentError()


__all__ = [
    "ConsoleListener",
    "JsonlListener",
    "ListenerRegistry",
    "ResultListener",
    "create_listener",
    "default_registry",
    "select_listeners",
]
