"""Protocol name resolution from IANA protocol numbers.

Maps the decimal protocol field of a flow log record (0-255) to the
lowercase keyword from the IANA "Assigned Internet Protocol Numbers"
registry, e.g. 6 -> "tcp", 17 -> "udp".
"""

import csv
from collections.abc import Iterable, Sequence
from pathlib import Path

from flowtally.common.exceptions import MissingMandatoryFileError, OutOfRangeProtocolError
from flowtally.common.logging import get_logger
from flowtally.common.metrics import REFERENCE_ROWS_LOADED, REFERENCE_ROWS_SKIPPED
from flowtally.common.parsing import parse_int

logger = get_logger(__name__)

MIN_PROTOCOL_NUMBER = 0
MAX_PROTOCOL_NUMBER = 255
PROTOCOL_TABLE_SIZE = MAX_PROTOCOL_NUMBER + 1

ProtocolTable = tuple[str | None, ...]


def is_valid_protocol_number(number: int) -> bool:
    """Check if a protocol number lies in the IANA range."""
    return MIN_PROTOCOL_NUMBER <= number <= MAX_PROTOCOL_NUMBER


def build_protocol_table(rows: Iterable[Sequence[str]]) -> ProtocolTable:
    """Build the protocol table from (decimal, keyword, ...) rows.

    Rows whose first field is not a decimal number are skipped. The IANA
    registry uses ranges such as "146-252" for unassigned numbers, which
    have no keyword. The first keyword registered for a number wins and
    keywords are stored lowercased.

    Args:
        rows: Parsed CSV rows without the header.

    Returns:
        Tuple of 256 entries indexed by protocol number.
    """
    table: list[str | None] = [None] * PROTOCOL_TABLE_SIZE

    for row in rows:
        if len(row) < 2:
            REFERENCE_ROWS_SKIPPED.labels(table="protocol_numbers").inc()
            continue
        try:
            number = parse_int(row[0].strip())
        except ValueError:
            REFERENCE_ROWS_SKIPPED.labels(table="protocol_numbers").inc()
            continue

        if not is_valid_protocol_number(number):
            logger.debug("Ignoring protocol number outside 0-255", number=number)
            REFERENCE_ROWS_SKIPPED.labels(table="protocol_numbers").inc()
            continue

        keyword = row[1].strip().lower()
        # Empty keyword means no name, the decimal fallback applies
        if keyword and table[number] is None:
            table[number] = keyword
            REFERENCE_ROWS_LOADED.labels(table="protocol_numbers").inc()

    return tuple(table)


def load_protocol_table(path: Path) -> ProtocolTable:
    """Load the protocol reference CSV file.

    Args:
        path: CSV file with a header row, decimal number first and keyword second.

    Returns:
        Protocol table indexed by protocol number.

    Raises:
        MissingMandatoryFileError: If the file is absent or unreadable.
    """
    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            next(reader, None)  # header
            table = build_protocol_table(reader)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read protocol reference file", path=str(path), error=str(e))
        raise MissingMandatoryFileError(
            "CSV file containing protocol numbers and names does not exist",
            details={"path": str(path)},
            cause=e,
        ) from e

    named = sum(1 for name in table if name is not None)
    logger.info("Loaded protocol reference file", path=str(path), named_protocols=named)
    return table


class ProtocolResolver:
    """Resolve protocol numbers to protocol names.

    The table is built once and never modified afterwards, so a single
    resolver can be shared by every tracker.
    """

    def __init__(self, table: ProtocolTable) -> None:
        """Initialize protocol resolver.

        Args:
            table: 256 optional names indexed by protocol number.
        """
        if len(table) != PROTOCOL_TABLE_SIZE:
            raise ValueError(
                f"Protocol table must have {PROTOCOL_TABLE_SIZE} entries, got {len(table)}"
            )
        self._table = tuple(table)

    @classmethod
    def from_csv(cls, path: Path) -> "ProtocolResolver":
        """Create a resolver from the protocol reference CSV file."""
        return cls(load_protocol_table(path))

    @classmethod
    def from_mapping(cls, names: dict[int, str]) -> "ProtocolResolver":
        """Create a resolver from a {number: name} mapping."""
        rows = [(str(number), name) for number, name in names.items()]
        return cls(build_protocol_table(rows))

    def resolve(self, number: int) -> str:
        """Resolve a protocol number to its name.

        Args:
            number: IANA protocol number.

        Returns:
            Lowercase protocol name, or the decimal string of the number
            when the registry has no name for it.

        Raises:
            OutOfRangeProtocolError: If number is outside 0-255.
        """
        if not is_valid_protocol_number(number):
            raise OutOfRangeProtocolError(number)

        name = self._table[number]
        return name if name else str(number)
