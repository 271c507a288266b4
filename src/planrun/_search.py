from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from planrun._errors import ArgumentError

logger = logging.getLogger(__name__)


@runtime_checkable
class DiscoveryHandle(Protocol):
    def join(self, timeout: float | None = None) -> None: ...
    def done(self) -> bool: ...


@runtime_checkable
class PluginDiscovery(Protocol):
    directories: list[Path]

    def search_async(self) -> DiscoveryHandle: ...


class _ThreadHandle:
    """Handle for a discovery running on a background daemon thread."""

    def __init__(self, thread: threading.Thread) -> None:
        self._thread = thread

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def done(self) -> bool:
        return not self._thread.is_alive()


class DirectoryPluginDiscovery:
    """Indexes candidate plugin modules (``*.py``) in the search directories."""

    def __init__(self) -> None:
        self.directories: list[Path] = []
        self._found: list[Path] = []
        self._lock = threading.Lock()

    @property
    def found(self) -> list[Path]:
        with self._lock:
            return list(self._found)

    def search_async(self) -> DiscoveryHandle:
        directories = list(self.directories)
        thread = threading.Thread(
            target=self._search, args=(directories,), name="planrun-discovery", daemon=True
        )
        thread.start()
        return _ThreadHandle(thread)

    def _search(self, directories: list[Path]) -> None:
        found: list[Path] = []
        for directory in directories:
            try:
                found.extend(sorted(directory.rglob("*.py")))
            except OSError as exc:
                logger.warning("Plugin search failed in '%s': %s", directory, exc)
        with self._lock:
            self._found = found
        logger.debug("Plugin search found %d candidate module(s)", len(found))


def resolve_search_paths(raw: list[str]) -> list[Path]:
    """Make every search directory absolute and check that it exists.

    All or nothing: the first invalid entry raises ArgumentError.
    """
    resolved: list[Path] = []
    for entry in raw:
        try:
            full = Path(entry).expanduser().absolute()
        except (OSError, ValueError, RuntimeError):
            print(f"Invalid plugin search path: '{entry}'", file=sys.stderr)
            raise ArgumentError(f"Invalid plugin search path: '{entry}'") from None
        if not full.is_dir():
            print(f"Invalid plugin search path: '{full}'", file=sys.stderr)
            raise ArgumentError(f"Invalid plugin search path: '{full}'")
        resolved.append(full)
    return resolved


def register_search_paths(
    paths: list[Path], discovery: PluginDiscovery
) -> DiscoveryHandle | None:
    """Hand the directories to plugin discovery and start it without waiting."""
    if not paths:
        return None
    discovery.directories.extend(paths)
    return discovery.search_async()
