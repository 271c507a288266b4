"""External parameter resolution.

Strict (``--external``) and lenient (``--try-external``) entries share one
syntax: ``name=value`` sets a parameter directly, anything without ``=`` names
a file of parameters to import after the plan has loaded.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from planrun._errors import ArgumentError
from planrun._loader import PlanLoader
from planrun._schema import Plan
from planrun.importers import ParameterImporter, find_importer

logger = logging.getLogger(__name__)


@dataclass
class ResolvedOverrides:
    values: dict[str, str] = field(default_factory=dict)
    files: list[Path] = field(default_factory=list)
    entry_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0 and not self.files

    @property
    def cache_raw(self) -> bool:
        """The raw plan text may only be cached when nothing overrides it."""
        return self.is_empty


def split_overrides(external: list[str], try_external: list[str]) -> ResolvedOverrides:
    resolved = ResolvedOverrides()
    for entry in [*external, *try_external]:
        resolved.entry_count += 1
        name, sep, value = entry.partition("=")
        if not sep:
            resolved.files.append(Path(entry))
            continue
        resolved.values[name] = value
    return resolved


def import_parameter_files(
    plan: Plan, files: list[Path], importers: list[ParameterImporter]
) -> None:
    for file in files:
        extension = file.suffix
        logger.info("Loading external parameters from '%s'.", file)
        importer = find_importer(importers, extension)
        if importer is None:
            logger.error(
                "No installed plugins provide loading of external parameters from "
                "'%s' files. No external parameters loaded from '%s'.",
                extension,
                file,
            )
            continue
        try:
            importer.import_parameters(plan, file)
        except (OSError, ValueError) as exc:
            logger.error("Unable to load external parameters from '%s': %s", file, exc)


def check_strict_overrides(external: list[str], plan: Plan) -> None:
    """Fail when a strict ``name=value`` entry names no parameter of the plan."""
    for entry in external:
        name, sep, _ = entry.partition("=")
        if not sep:
            continue
        if plan.get_parameter(name) is not None:
            continue
        logger.warning("External parameter '%s' does not exist in the test plan.", name)
        logger.warning("Statement '%s' has no effect.", entry)
        raise ArgumentError("")


def load_plan_with_overrides(
    path: Path,
    external: list[str],
    try_external: list[str],
    *,
    lenient: bool,
    loader: PlanLoader,
    importers: list[ParameterImporter],
) -> Plan:
    overrides = split_overrides(external, try_external)

    start = time.perf_counter()
    with path.open("rb") as stream:
        plan = loader.load(stream, path, overrides.cache_raw, overrides.values, lenient)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("Loaded test plan from %s in %.0f ms", path, elapsed_ms)

    if overrides.files:
        import_parameter_files(plan, overrides.files, importers)

    check_strict_overrides(external, plan)
    return plan
