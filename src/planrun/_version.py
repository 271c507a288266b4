from __future__ import annotations

import importlib.metadata as metadata


def get_version() -> str:
    try:
        return metadata.version("planrun")
    except metadata.PackageNotFoundError:
        return "unknown"
