"""
File tracker for incremental indexing.

Persists a mapping of source path to the MD5 of the file content last
indexed, so unchanged files are skipped on the next run. The tracker file is
owned by the indexing process for its whole duration and is flushed on every
exit path, including interruption.

Dependencies: json, hashlib
System role: Source of truth for "already indexed"
"""

import hashlib
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

_READ_BLOCK = 1024 * 1024


class FileTracker:
    """Source path to content hash mapping backed by a JSON file."""

    def __init__(self, tracker_path: str | Path, root: str | Path | None = None) -> None:
        """
        Initialize an empty tracker bound to a file.

        Args:
            tracker_path: JSON file holding the mapping
            root: Corpus root; keys are paths relative to it (absolute paths otherwise)
        """
        self.tracker_path = Path(tracker_path)
        self.root = Path(root) if root is not None else None
        self._files: dict[str, str] = {}
        self._dirty = False

    @classmethod
    @contextmanager
    def open(
        cls,
        tracker_path: str | Path,
        root: str | Path | None = None,
    ) -> Iterator["FileTracker"]:
        """
        Load the tracker, yield it, and flush it however the block exits.

        Usage:
            with FileTracker.open("file_tracker.json", root="data_sources") as tracker:
                if tracker.should_process(path): ...
        """
        tracker = cls(tracker_path, root)
        tracker.load()
        try:
            yield tracker
        finally:
            tracker.save()

    @staticmethod
    def compute_hash(path: str | Path) -> str:
        """MD5 hex digest of a file's bytes."""
        digest = hashlib.md5()
        with open(path, "rb") as handle:
            for block in iter(lambda: handle.read(_READ_BLOCK), b""):
                digest.update(block)
        return digest.hexdigest()

    def load(self) -> None:
        """
        Load the mapping from disk.

        A missing or blank file yields an empty mapping. Both the
        {"files": {...}} layout and a flat {path: hash} object are accepted.

        Raises:
            ValueError: When the file holds something other than a JSON object
        """
        self._files = {}
        self._dirty = False
        if not self.tracker_path.exists():
            return
        content = self.tracker_path.read_text(encoding="utf-8")
        if not content.strip():
            return

        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Tracker file is not a JSON object: {self.tracker_path}")
        files = data["files"] if isinstance(data.get("files"), dict) else data
        self._files = {str(key): str(value) for key, value in files.items()}
        logger.debug(
            "Loaded file tracker",
            extra={"tracker_path": str(self.tracker_path), "entries": len(self._files)},
        )

    def save(self) -> None:
        """Atomically write the mapping (temp file + rename)."""
        if not self._dirty and self.tracker_path.exists():
            return
        self.tracker_path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"files": self._files}, indent=2, sort_keys=True) + "\n"

        fd, tmp_name = tempfile.mkstemp(
            dir=self.tracker_path.parent, prefix=f".{self.tracker_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.tracker_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._dirty = False

    def key_for(self, path: str | Path) -> str:
        """Tracker key of a file: POSIX path relative to root when set."""
        path = Path(path)
        if self.root is not None:
            for root in (self.root, self.root.resolve()):
                try:
                    return path.relative_to(root).as_posix()
                except ValueError:
                    continue
        return path.as_posix()

    def get_hash(self, path: str | Path) -> str | None:
        """Stored hash for a path, None when untracked."""
        return self._files.get(self.key_for(path))

    def has_changed(self, path: str | Path, current_hash: str) -> bool:
        """True when the path is untracked or its stored hash differs."""
        return self._files.get(self.key_for(path)) != current_hash

    def should_process(self, path: str | Path) -> bool:
        """True when the file's current content hash differs from the recorded one."""
        return self.has_changed(path, self.compute_hash(path))

    def record_processed(self, path: str | Path, content_hash: str) -> None:
        """Record a fully indexed file."""
        self._files[self.key_for(path)] = content_hash
        self._dirty = True

    def remove(self, path: str | Path) -> None:
        """Forget a path."""
        if self._files.pop(self.key_for(path), None) is not None:
            self._dirty = True

    def clear(self) -> None:
        """Forget every path."""
        self._files = {}
        self._dirty = True

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.key_for(path) in self._files
