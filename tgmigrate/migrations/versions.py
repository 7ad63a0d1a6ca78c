"""Version arithmetic over zero-padded migration numbers.

Versions are strings like "007". Everything here is pure: no I/O.
"""

from __future__ import annotations

import re

from tgmigrate.exceptions import InvalidDirectionError, InvalidVersionError
from tgmigrate.types import Direction, MigrationRecord, Version

VERSION_WIDTH = 3

# Stands in for "nothing applied yet": one below the first migration (000).
_BEFORE_FIRST = -1

_VERSION_RE = re.compile(r"[+-]?[0-9]+")


def format_version(number: int) -> Version:
    """Render an integer as a zero-padded version string."""
    return f"{number:0{VERSION_WIDTH}d}"


def parse_version(version: Version) -> int:
    """Parse a version string, raising InvalidVersionError if it is not an integer."""
    if not isinstance(version, str) or not _VERSION_RE.fullmatch(version):
        raise InvalidVersionError(f"migration number was invalid: {version!r}")
    return int(version)


def steps_between(
    from_version: Version | None, to_version: Version,
) -> tuple[list[Version], Direction]:
    """Return the versions to run to get from `from_version` to `to_version`.

    An empty `from_version` means nothing has been applied, so every
    version from 000 up to `to_version` is returned; "-01" means the same.
    Going up, the list is ascending and includes `to_version`; going down
    it is descending, starts at `from_version` and stops just above
    `to_version`. Negative targets are rejected.
    """
    if not to_version:
        raise InvalidVersionError("target migration number must not be empty")

    start = parse_version(from_version) if from_version else _BEFORE_FIRST
    end = parse_version(to_version)
    if end < 0:
        raise InvalidVersionError(f"target migration number must not be negative: {to_version!r}")
    # -1 is what decrement("000") leaves behind: nothing applied.
    if start < _BEFORE_FIRST:
        raise InvalidVersionError(f"current migration number is invalid: {from_version!r}")

    if start == end:
        return [], Direction.UP

    low, high = min(start, end), max(start, end)
    steps = [format_version(n) for n in range(low + 1, high + 1)]

    if start > end:
        steps.reverse()
        return steps, Direction.DOWN
    return steps, Direction.UP


def decrement(version: Version) -> Version:
    """Return the version one below `version`.

    There is no floor: decrement("000") is "-01".
    """
    return format_version(parse_version(version) - 1)


def current_version_from_record(record: MigrationRecord | None) -> Version | None:
    """Work out the graph's current version from its most recent record.

    A "down" record names the migration that was undone, so the graph is
    left at the version below it.
    """
    if record is None:
        return None
    if parse_version(record.version) < 0:
        raise InvalidVersionError(
            f"migration record has negative version: {record.version!r} "
            f"(graph {record.graph_name})"
        )
    if record.direction == Direction.UP.value:
        return record.version
    if record.direction == Direction.DOWN.value:
        return decrement(record.version)
    raise InvalidDirectionError(
        f"migration record has invalid direction: {record.direction!r} "
        f"(version {record.version}, graph {record.graph_name})"
    )
