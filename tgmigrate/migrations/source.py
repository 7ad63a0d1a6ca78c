"""Migration files on disk.

Files are named `<version>_<name>.<direction>.<ext>`, e.g.
`003_add_person_vertex.up.gsql`. The directory is re-read on every
lookup: migration sets are small and do not change during a run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from tgmigrate.exceptions import InvalidMigrationFileError, MigrationNotFoundError
from tgmigrate.types import Direction, Version

_logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "gsql"


@dataclass(frozen=True)
class MigrationArtifact:
    version: Version
    name: str
    direction: Direction
    path: Path


class MigrationSource:
    """Looks up migration scripts in a directory."""

    def __init__(self, directory: Path | str, extension: str = DEFAULT_EXTENSION) -> None:
        self.directory = Path(directory)
        self.extension = extension.lstrip(".")
        self._name_re = re.compile(
            rf"(?P<version>[0-9]+)_(?P<name>.*)\.(?P<direction>up|down)\.{re.escape(self.extension)}"
        )

    def _entries(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return sorted((p for p in self.directory.iterdir() if p.is_file()), key=lambda p: p.name)

    def find(self, version: Version, direction: Direction) -> Path:
        """Return the path of the first file matching version and direction."""
        prefix = f"{version}_"
        suffix = f".{direction.value}.{self.extension}"
        for entry in self._entries():
            if entry.name.startswith(prefix) and entry.name.endswith(suffix):
                return entry
        raise MigrationNotFoundError(version, direction.value, str(self.directory))

    def resolve(self, version: Version, direction: Direction) -> bytes:
        """Return the script body for a version and direction."""
        path = self.find(version, direction)
        _logger.debug("Resolved migration %s (%s) to %s", version, direction.value, path)
        return path.read_bytes()

    def read(self, version: Version, direction: Direction) -> str:
        """Return the script for a version and direction as UTF-8 text."""
        path = self.find(version, direction)
        try:
            return path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidMigrationFileError(str(path), f"not valid UTF-8: {e}") from e

    def list_artifacts(self) -> list[MigrationArtifact]:
        """Every well-formed migration file, in filename order."""
        artifacts: list[MigrationArtifact] = []
        for entry in self._entries():
            match = self._name_re.fullmatch(entry.name)
            if not match:
                _logger.debug("Skipping non-migration file %s", entry.name)
                continue
            artifacts.append(MigrationArtifact(
                version=match["version"],
                name=match["name"],
                direction=Direction(match["direction"]),
                path=entry,
            ))
        return artifacts
