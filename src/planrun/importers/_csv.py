from __future__ import annotations

import csv
from pathlib import Path

from planrun.importers._base import ParameterImporter


class CsvImporter(ParameterImporter):
    """Rows of ``name,value``; an optional ``Parameter,Value`` header is skipped."""

    extension = ".csv"

    def read_values(self, path: Path) -> list[tuple[str, str]]:
        values: list[tuple[str, str]] = []
        with path.open(newline="", encoding="utf-8") as f:
            try:
                for index, row in enumerate(csv.reader(f)):
                    if len(row) < 2 or not row[0].strip():
                        continue
                    if index == 0 and row[0].strip().lower() == "parameter":
                        continue
                    values.append((row[0].strip(), row[1]))
            except csv.Error as exc:
                raise ValueError(f"{path}: {exc}") from exc
        return values
