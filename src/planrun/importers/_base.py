from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from planrun._schema import Plan

logger = logging.getLogger(__name__)


class ParameterImporter(ABC):
    """Loads external parameter values for a plan from a file."""

    #: File suffix handled by this importer, including the dot.
    extension: str = ""

    @abstractmethod
    def read_values(self, path: Path) -> list[tuple[str, str]]:
        """Return ``(name, value)`` pairs in file order."""

    def import_parameters(self, plan: Plan, path: Path) -> None:
        for name, value in self.read_values(path):
            parameter = plan.get_parameter(name)
            if parameter is None:
                logger.warning(
                    "External parameter '%s' from '%s' does not exist in the test plan.",
                    name,
                    path,
                )
                continue
            parameter.set_value(value)
