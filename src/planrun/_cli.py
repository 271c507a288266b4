from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import NoReturn

from rich.console import Console
from rich.logging import RichHandler

from planrun._errors import ArgumentError
from planrun._exit import ExitStatus
from planrun._orchestrator import RunContext, RunOrchestrator, RunRequest
from planrun._settings import load_profile
from planrun._version import get_version

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors map onto the argument-error exit code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        raise ArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="planrun",
        description="Run a test plan.",
    )
    parser.add_argument("plan", metavar="PLAN", help="Location of the test plan to run.")
    parser.add_argument(
        "--settings",
        default="",
        help="Settings profile to load. Names a subdirectory of $PLANRUN_SETTINGS_DIR "
        "(default: ~/.planrun/settings/CurrentProfile).",
    )
    parser.add_argument(
        "--search",
        action="append",
        default=None,
        help=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--metadata",
        action="append",
        default=None,
        help="Metadata can be added multiple times, e.g. the serial number "
        "of your DUT (usage: --metadata dut-id=5).",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never wait for user input.",
    )
    parser.add_argument(
        "-e",
        "--external",
        action="append",
        default=None,
        help="Set an external test plan parameter using parameter=value, "
        "e.g. '-e delay=1.0'. Can be used multiple times, or name a .csv/.json "
        "file of parameters: '-e file.csv'.",
    )
    parser.add_argument(
        "-t",
        "--try-external",
        action="append",
        default=None,
        help="Like --external, but ignored when the parameter does not exist "
        "in the test plan.",
    )
    parser.add_argument(
        "--list-external-parameters",
        action="store_true",
        help="List the available external test plan parameters.",
    )
    parser.add_argument(
        "--results",
        default=None,
        help="Comma-separated list of the result listeners to enable, "
        "e.g. --results Console,JSONL. Names are matched case-insensitively but "
        "spaces are significant, so do not put spaces after the commas. "
        "Use --results \"\" to disable all of them.",
    )
    parser.add_argument(
        "--ignore-load-errors",
        action="store_true",
        help="Ignore errors while loading the test plan.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Level of log messages to display (default: INFO).",
    )
    parser.add_argument("--version", action="version", version=f"planrun {get_version()}")
    return parser


def request_from_args(args: argparse.Namespace) -> RunRequest:
    return RunRequest(
        plan_path=args.plan,
        settings=args.settings,
        search=args.search or [],
        metadata=args.metadata or [],
        non_interactive=args.non_interactive,
        external=args.external or [],
        try_external=args.try_external or [],
        list_external_parameters=args.list_external_parameters,
        results=args.results,
        ignore_load_errors=args.ignore_load_errors,
    )


def configure_logging(level: str) -> None:
    root = logging.getLogger("planrun")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def run(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except ArgumentError:
        return int(ExitStatus.ARGUMENT_ERROR)

    configure_logging(args.log_level)
    request = request_from_args(args)

    context = RunContext(listeners=load_profile(None))
    orchestrator = RunOrchestrator(context)

    def _cancel(signum: int, frame: object) -> None:
        logger.warning("Interrupt received; cancelling the test plan run.")
        context.cancel.set()

    previous = signal.signal(signal.SIGINT, _cancel)
    try:
        return orchestrator.execute(request)
    finally:
        signal.signal(signal.SIGINT, previous)


def main() -> NoReturn:
    sys.exit(run())
