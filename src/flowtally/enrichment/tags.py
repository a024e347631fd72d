"""Tag classification of (port, protocol) pairs.

The lookup table is a small CSV file of dstport,protocol,tag rows
maintained by operators. Tagging is best effort: when the table is
missing the run continues without a tag section.
"""

import csv
from collections.abc import Iterable, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Final

from flowtally.common.exceptions import MissingFileError
from flowtally.common.logging import get_logger
from flowtally.common.metrics import REFERENCE_ROWS_LOADED, REFERENCE_ROWS_SKIPPED
from flowtally.common.parsing import parse_int

logger = get_logger(__name__)

UNTAGGED: Final[str] = "Untagged"

TagKey = tuple[int, str]


def build_tag_table(rows: Iterable[Sequence[str]]) -> dict[TagKey, str]:
    """Build the tag table from (port, protocol, tag) rows.

    Rows with fewer than three fields, a non-integer port or an empty
    tag are skipped.
    When the same (port, protocol) appears more than once the first tag
    is kept.

    Args:
        rows: Parsed CSV rows without the header.

    Returns:
        Mapping of (port, lowercase protocol) to tag.
    """
    table: dict[TagKey, str] = {}

    for row in rows:
        if not row or all(not field.strip() for field in row):
            continue
        if len(row) < 3:
            logger.warning("Skipping lookup table row with missing fields", row=",".join(row))
            REFERENCE_ROWS_SKIPPED.labels(table="lookup").inc()
            continue
        try:
            port = parse_int(row[0].strip())
        except ValueError:
            logger.warning("Skipping lookup table row with non-integer port", row=",".join(row))
            REFERENCE_ROWS_SKIPPED.labels(table="lookup").inc()
            continue

        key = (port, row[1].strip().lower())
        tag = row[2].strip()
        if not tag:
            logger.warning("Skipping lookup table row with empty tag", row=",".join(row))
            REFERENCE_ROWS_SKIPPED.labels(table="lookup").inc()
            continue
        if key in table:
            logger.debug("Ignoring duplicate lookup entry", port=port, protocol=key[1], tag=tag)
            continue
        table[key] = tag
        REFERENCE_ROWS_LOADED.labels(table="lookup").inc()

    return table


def load_tag_table(path: Path) -> dict[TagKey, str]:
    """Load the lookup table CSV file.

    Raises:
        MissingFileError: If the file is absent or unreadable.
    """
    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            next(reader, None)  # header
            table = build_tag_table(reader)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read lookup table", path=str(path), error=str(e))
        raise MissingFileError(
            "Lookup Table file path is incorrect or file does not exist",
            details={"path": str(path)},
            cause=e,
        ) from e

    logger.info("Loaded lookup table", path=str(path), entries=len(table))
    return table


class TagLookup:
    """Map (port, protocol name) pairs to tags."""

    def __init__(self, table: dict[TagKey, str]) -> None:
        self._table = MappingProxyType(dict(table))

    @classmethod
    def from_csv(cls, path: Path) -> "TagLookup":
        """Create a lookup from the lookup table CSV file."""
        return cls(load_tag_table(path))

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[str]]) -> "TagLookup":
        """Create a lookup from already parsed rows."""
        return cls(build_tag_table(rows))

    def __len__(self) -> int:
        return len(self._table)

    def tag_for(self, port: int, protocol_name: str) -> str:
        """Get the tag for a port and protocol name.

        Returns:
            The registered tag, or "Untagged" if the pair is unknown.
        """
        return self._table.get((port, protocol_name.lower()), UNTAGGED)
