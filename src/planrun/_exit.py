from __future__ import annotations

import logging
from enum import IntEnum

from planrun._verdict import Verdict

logger = logging.getLogger(__name__)


class ExitStatus(IntEnum):
    OK = 0
    INCONCLUSIVE = 20
    FAIL = 30
    RUNTIME_ERROR = 50
    ARGUMENT_ERROR = 60
    LOAD_ERROR = 70
    PLUGIN_ERROR = 80


def exit_status_for(verdict: Verdict) -> ExitStatus:
    """Map a plan verdict onto the process exit status."""
    if verdict is Verdict.INCONCLUSIVE:
        return ExitStatus.INCONCLUSIVE
    if verdict is Verdict.FAIL:
        return ExitStatus.FAIL
    if verdict.is_worse_than(Verdict.FAIL):
        return ExitStatus.RUNTIME_ERROR
    return ExitStatus.OK


def exit_with(status: ExitStatus) -> int:
    if status in (ExitStatus.RUNTIME_ERROR, ExitStatus.ARGUMENT_ERROR):
        logger.info("Unable to continue. Now exiting.")
    return int(status)
