from __future__ import annotations

from pathlib import Path

from pydantic import TypeAdapter

from planrun.importers._base import ParameterImporter

_values_adapter: TypeAdapter[dict[str, str | int | float | bool]] = TypeAdapter(
    dict[str, str | int | float | bool]
)


def _to_str(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class JsonImporter(ParameterImporter):
    """A JSON object mapping parameter names to values."""

    extension = ".json"

    def read_values(self, path: Path) -> list[tuple[str, str]]:
        data = _values_adapter.validate_json(path.read_bytes())
        return [(name, _to_str(value)) for name, value in data.items()]
