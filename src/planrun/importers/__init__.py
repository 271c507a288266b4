from __future__ import annotations

from planrun.importers._base import ParameterImporter
from planrun.importers._csv import CsvImporter
from planrun.importers._json import JsonImporter


def default_importers() -> list[ParameterImporter]:
    return [CsvImporter(), JsonImporter()]


def find_importer(
    importers: list[ParameterImporter], extension: str
) -> ParameterImporter | None:
    for importer in importers:
        if importer.extension == extension:
            return importer
    return None


__all__ = [
    "CsvImporter",
    "JsonImporter",
    "ParameterImporter",
    "default_importers",
    "find_importer",
]
