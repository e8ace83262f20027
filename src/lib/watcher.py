"""
Watch mode: rebuild the bundle whenever a project source file changes

Polls the project directory instead of subscribing to OS events. Rapid
successive changes are debounced into one rebuild, rebuilds never overlap
(the loop is sequential), and the bundle itself is excluded from the
snapshot so writing it cannot trigger another rebuild.
"""

import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from ..config import appsettings
from .errors import TiccError
from .log import LOG, LOG_error


Snapshot = Dict[Path, Tuple[int, int]]


class ProjectWatcher:
    """
    Polling watcher over files with one extension

    Attributes:
        directory: Project directory, scanned recursively
        extension: Language extension without dot (e.g., "moon")
        output_file: Bundle path, never part of a snapshot
        interval: Seconds between polls
        debounce: Quiet seconds required before a rebuild
    """

    def __init__(
        self,
        directory: Path,
        extension: str,
        output_file: Path,
        interval: Optional[float] = None,
        debounce: Optional[float] = None,
    ) -> None:
        self.directory = Path(directory).resolve()
        self.extension = extension
        self.output_file = Path(output_file).resolve()
        self.interval = appsettings.watch_interval if interval is None else interval
        self.debounce = appsettings.watch_debounce if debounce is None else debounce

    def snapshot_take(self) -> Snapshot:
        """(mtime_ns, size) of every watched file"""
        snapshot: Snapshot = {}
        for path in self.directory.rglob(f"*.{self.extension}"):
            resolved = path.resolve()
            if resolved == self.output_file or not path.is_file():
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                # removed between listing and stat
                continue
            snapshot[resolved] = (stat.st_mtime_ns, stat.st_size)
        return snapshot

    @staticmethod
    def changes_describe(before: Snapshot, after: Snapshot) -> Dict[str, list]:
        """Paths created, modified and removed between two snapshots"""
        return {
            "created": sorted(p for p in after if p not in before),
            "modified": sorted(p for p in after if p in before and after[p] != before[p]),
            "removed": sorted(p for p in before if p not in after),
        }

    def settled_wait(self, snapshot: Snapshot) -> Snapshot:
        """Poll until the tree stays unchanged for `debounce` seconds"""
        while True:
            time.sleep(self.debounce)
            current = self.snapshot_take()
            if current == snapshot:
                return current
            snapshot = current

    def watch(
        self,
        rebuild: Callable[[], Any],
        max_rebuilds: Optional[int] = None,
    ) -> int:
        """
        Run `rebuild` after every settled change until interrupted

        Args:
            rebuild: Runs one fresh compile session
            max_rebuilds: Stop after this many rebuilds (None: run forever)

        Returns:
            Number of rebuilds performed
        """
        LOG(f"Starting to watch directory '{self.directory}'...", level=1)
        rebuilds = 0
        snapshot = self.snapshot_take()

        try:
            while max_rebuilds is None or rebuilds < max_rebuilds:
                time.sleep(self.interval)
                current = self.snapshot_take()
                if current == snapshot:
                    continue

                changes = self.changes_describe(snapshot, current)
                LOG(f"change detected: {changes}", level=2)
                snapshot = self.settled_wait(current)

                rebuilds += 1
                try:
                    rebuild()
                except (TiccError, OSError) as e:
                    LOG_error(f"Compilation failed: {e}")
                LOG("-" * 44, level=1)
        except KeyboardInterrupt:
            LOG("Watch stopped", level=1)

        return rebuilds
