"""Deploy snapshot: the persisted record of what is deployed in the cloud."""

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, RootModel, ValidationError

logger = logging.getLogger(__name__)


class SnapshotIOError(Exception):
    """Raised when the deploy snapshot cannot be read, parsed, or written."""


class SnapshotEntry(BaseModel):
    """Last recorded state of one resource.

    Attributes:
        config: Resolved configuration the resource was deployed with
        dependencies: Resource IDs it depended on at that deploy
        output: Backend output (e.g. the cloud-side ID)
    """

    config: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    output: dict[str, Any] = Field(default_factory=dict)


class DeploySnapshot(RootModel[dict[str, SnapshotEntry]]):
    """``resource_id -> SnapshotEntry``, written wholesale after each deploy."""

    root: dict[str, SnapshotEntry] = Field(default_factory=dict)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self.root

    def __len__(self) -> int:
        return len(self.root)

    def get(self, resource_id: str) -> SnapshotEntry | None:
        return self.root.get(resource_id)

    def dumps(self) -> str:
        data = self.model_dump(mode="json")
        return json.dumps(data, indent=2, sort_keys=True) + "\n"

    def save(self, path: Path) -> None:
        """Save the snapshot to a JSON file.

        - Writes atomically (temp file + rename)
        - Writes a `.backup` copy of the previous snapshot when overwriting
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            backup_path = Path(str(path) + ".backup")
            # Avoid TOCTOU race between exists() and read_bytes().
            with contextlib.suppress(FileNotFoundError):
                backup_path.write_bytes(path.read_bytes())

            fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            tmp_file = Path(tmp_path)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(self.dumps())
                    f.flush()
                    os.fsync(f.fileno())
                tmp_file.replace(path)
            finally:
                with contextlib.suppress(FileNotFoundError):
                    tmp_file.unlink()
        except OSError as e:
            raise SnapshotIOError(f"Unable to write snapshot {path}: {e}") from e
        logger.debug("Snapshot saved: %d resources path=%s", len(self.root), path)

    @classmethod
    def load(cls, path: Path) -> "DeploySnapshot":
        """Load a snapshot from a JSON file."""
        try:
            snapshot = cls.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SnapshotIOError(f"Unable to read snapshot {path}: {e}") from e
        except (ValidationError, UnicodeDecodeError) as e:
            raise SnapshotIOError(f"Unable to parse snapshot {path}: {e}") from e
        logger.debug("Snapshot loaded from %s", path)
        return snapshot

    @classmethod
    def load_or_create(cls, path: Path) -> "DeploySnapshot":
        """Load an existing snapshot, or return an empty one for a brand-new install."""
        if path.exists():
            return cls.load(path)
        logger.debug("No snapshot at %s, starting empty", path)
        return cls()
