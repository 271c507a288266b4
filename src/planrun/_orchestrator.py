from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field
from rich.console import Console

from planrun._console import print_external_parameters
from planrun._errors import ArgumentError, PlanLoadError
from planrun._executor import PlanRunner, SubprocessPlanRunner
from planrun._exit import ExitStatus, exit_status_for, exit_with
from planrun._loader import JsonPlanLoader, PlanLoader
from planrun._metadata import parse_metadata
from planrun._parameters import load_plan_with_overrides
from planrun._search import (
    DirectoryPluginDiscovery,
    DiscoveryHandle,
    PluginDiscovery,
    register_search_paths,
    resolve_search_paths,
)
from planrun._settings import load_profile
from planrun._version import get_version
from planrun.importers import ParameterImporter, default_importers
from planrun.listeners import ListenerRegistry, default_registry, select_listeners

logger = logging.getLogger(__name__)


class RunRequest(BaseModel):
    """Everything the command line asked for, before validation."""

    plan_path: str = ""
    settings: str = ""
    search: list[str] = Field(default_factory=list)
    metadata: list[str] = Field(default_factory=list)
    non_interactive: bool = False
    external: list[str] = Field(default_factory=list)
    try_external: list[str] = Field(default_factory=list)
    list_external_parameters: bool = False
    # None leaves the listener registry untouched; "" disables every listener.
    results: str | None = None
    ignore_load_errors: bool = False


@dataclass
class RunContext:
    """Collaborators and per-run state shared by one orchestration."""

    listeners: ListenerRegistry = field(default_factory=default_registry)
    discovery: PluginDiscovery = field(default_factory=DirectoryPluginDiscovery)
    loader: PlanLoader = field(default_factory=JsonPlanLoader)
    # Built from the interactive setting when not supplied.
    runner: PlanRunner | None = None
    importers: list[ParameterImporter] = field(default_factory=default_importers)
    console: Console = field(default_factory=Console)
    cancel: threading.Event = field(default_factory=threading.Event)
    profile_loader: Callable[[str | None], ListenerRegistry] = load_profile
    interactive: bool = True
    discovery_handle: DiscoveryHandle | None = None


class RunState(str, Enum):
    INIT = "init"
    PATHS_RESOLVED = "paths_resolved"
    METADATA_PARSED = "metadata_parsed"
    PLAN_LOADED = "plan_loaded"
    LISTING_ONLY = "listing_only"
    EXECUTING = "executing"
    TERMINAL = "terminal"


class RunOrchestrator:
    def __init__(self, context: RunContext | None = None) -> None:
        self.context = context or RunContext()
        self.state = RunState.INIT
        self.lenient = False

    def _finish(self, status: ExitStatus) -> int:
        self.state = RunState.TERMINAL
        return exit_with(status)

    def execute(self, request: RunRequest) -> int:
        context = self.context
        self.lenient = request.ignore_load_errors

        if request.search:
            logger.warning(
                "Argument '--search' is deprecated. The '--ignore-load-errors' argument "
                "has been added to avoid potential test plan load issues."
            )
            self.lenient = True

        plan_path = Path(request.plan_path).absolute() if request.plan_path.strip() else None

        try:
            search_paths = resolve_search_paths(request.search)
        except ArgumentError:
            return self._finish(ExitStatus.ARGUMENT_ERROR)
        context.discovery_handle = register_search_paths(search_paths, context.discovery)
        self.state = RunState.PATHS_RESOLVED

        metadata = parse_metadata(request.metadata)
        self.state = RunState.METADATA_PARSED

        logger.info("planrun Command Line Interface %s", get_version())

        profile = request.settings.strip()
        if profile:
            try:
                context.listeners = context.profile_loader(profile)
            except (OSError, ValueError) as exc:
                logger.error("Unable to load settings profile '%s': %s", profile, exc)
                return self._finish(ExitStatus.ARGUMENT_ERROR)

        context.interactive = not request.non_interactive

        if request.results is not None:
            try:
                select_listeners(request.results, context.listeners, context.console)
            except ArgumentError:
                return self._finish(ExitStatus.ARGUMENT_ERROR)

        if plan_path is None:
            logger.error("Please supply a valid test plan path as an argument.")
            return self._finish(ExitStatus.ARGUMENT_ERROR)

        if not plan_path.is_file():
            logger.error("File '%s' does not exist.", plan_path)
            return self._finish(ExitStatus.ARGUMENT_ERROR)

        try:
            plan = load_plan_with_overrides(
                plan_path,
                request.external,
                request.try_external,
                lenient=self.lenient,
                loader=context.loader,
                importers=context.importers,
            )
        except PlanLoadError as exc:
            logger.error("%s", exc)
            return self._finish(ExitStatus.LOAD_ERROR)
        except ArgumentError as exc:
            if str(exc).strip():
                logger.error("%s", exc)
            return self._finish(ExitStatus.ARGUMENT_ERROR)
        except Exception as exc:
            logger.error("Caught error while loading test plan: '%s'", exc)
            logger.debug("Plan load failure", exc_info=True)
            return self._finish(ExitStatus.RUNTIME_ERROR)
        self.state = RunState.PLAN_LOADED

        logger.info("Test Plan: %s", plan.name)

        if request.list_external_parameters:
            self.state = RunState.LISTING_ONLY
            print_external_parameters(plan, context.console)
            return self._finish(ExitStatus.OK)

        self.state = RunState.EXECUTING
        runner = context.runner or SubprocessPlanRunner(interactive=context.interactive)
        try:
            verdict = runner.run(
                plan, metadata, context.cancel, context.listeners.enabled()
            )
        except Exception as exc:
            logger.error("Caught error while running test plan: '%s'", exc)
            logger.debug("Plan run failure", exc_info=True)
            return self._finish(ExitStatus.RUNTIME_ERROR)

        logger.info("Test Plan verdict: %s", verdict.value)
        return self._finish(exit_status_for(verdict))
