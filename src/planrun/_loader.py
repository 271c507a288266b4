from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, TypeAdapter, ValidationError

from planrun._errors import PlanLoadError
from planrun._schema import Plan, PlanParameter, PlanStep

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)

_parameter_adapter: TypeAdapter[PlanParameter] = TypeAdapter(PlanParameter)
_step_adapter: TypeAdapter[PlanStep] = TypeAdapter(PlanStep)


@runtime_checkable
class PlanLoader(Protocol):
    def load(
        self,
        stream: IO[bytes],
        path: Path,
        cache_raw: bool,
        overrides: Mapping[str, str],
        lenient: bool,
    ) -> Plan: ...


def _validate_items(
    items: Any,
    adapter: TypeAdapter[_M],
    kind: str,
    path: Path,
    lenient: bool,
) -> list[_M]:
    """Validate a list of plan entries one by one.

    In lenient mode invalid entries are logged and dropped; otherwise the first
    one raises PlanLoadError.
    """
    if items is None:
        return []
    if not isinstance(items, list):
        message = f"Expected a list of {kind}s in '{path}', got {type(items).__name__}"
        if not lenient:
            raise PlanLoadError(message)
        logger.warning(message)
        return []

    valid: list[_M] = []
    for index, item in enumerate(items):
        try:
            valid.append(adapter.validate_python(item))
        except ValidationError as exc:
            message = f"Invalid {kind} #{index} in '{path}': {exc}"
            if not lenient:
                raise PlanLoadError(message) from exc
            logger.warning("%s (ignored)", message)
    return valid


class JsonPlanLoader:
    """Loads plans stored as JSON documents."""

    def load(
        self,
        stream: IO[bytes],
        path: Path,
        cache_raw: bool,
        overrides: Mapping[str, str],
        lenient: bool,
    ) -> Plan:
        try:
            raw = stream.read().decode("utf-8")
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PlanLoadError(f"Unable to read test plan '{path}': {exc}") from exc
        if not isinstance(data, dict):
            raise PlanLoadError(f"Test plan '{path}' must contain a JSON object.")

        parameters = _validate_items(
            data.get("parameters"), _parameter_adapter, "parameter", path, lenient
        )
        steps = _validate_items(data.get("steps"), _step_adapter, "step", path, lenient)

        try:
            plan = Plan.model_validate({**data, "parameters": parameters, "steps": steps})
        except ValidationError as exc:
            raise PlanLoadError(f"Invalid test plan '{path}': {exc}") from exc

        for name, value in overrides.items():
            parameter = plan.get_parameter(name)
            if parameter is None:
                logger.debug("Override '%s' matches no parameter in '%s'", name, path)
                continue
            parameter.set_value(value)

        plan._path = path
        if cache_raw:
            plan._raw = raw
        return plan
