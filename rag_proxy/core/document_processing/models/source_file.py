"""
Source file model.

Identity of a file in the corpus as seen by the file tracker.

Dependencies: pydantic
System role: Data structure for scanned source files
"""

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field


class SourceFile(BaseModel):
    """File discovered under the corpus root."""

    path: Path = Field(description="Absolute path on disk")
    relative_path: str = Field(description="POSIX path relative to the corpus root (tracker key)")
    modified_at: datetime = Field(description="Last modification time (UTC)")

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "SourceFile":
        """Build a SourceFile from a path inside root."""
        stat = path.stat()
        return cls(
            path=path,
            relative_path=path.relative_to(root).as_posix(),
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    @property
    def extension(self) -> str:
        """Lower-case file extension including the dot."""
        return self.path.suffix.lower()
