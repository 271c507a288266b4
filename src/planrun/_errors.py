from __future__ import annotations


class PlanrunError(Exception):
    """Base class for errors that map onto a planrun exit status."""


class ArgumentError(PlanrunError):
    """Invalid command line input.

    The message may be empty when the diagnostic was already printed by the
    component that raised it.
    """


class PlanLoadError(PlanrunError):
    """The plan file could not be deserialized."""
