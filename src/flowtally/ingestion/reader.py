"""Flow log line source and line parser.

Flow logs are AWS VPC flow log (version 2) style text files, one
space-separated record per line:

    version account-id interface-id srcaddr dstaddr srcport dstport protocol ...

Only the destination port (field 6) and protocol number (field 7) are
used.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import TextIO

from flowtally.common.exceptions import MalformedFlowLineError, MissingMandatoryFileError
from flowtally.common.logging import get_logger
from flowtally.common.parsing import parse_int

logger = get_logger(__name__)

PORT_FIELD = 6
PROTOCOL_FIELD = 7
MIN_FIELDS = PROTOCOL_FIELD + 1


@dataclass(slots=True)
class FlowRecord:
    """The part of a flow log line that gets counted.

    The protocol number is not range checked here; that is up to the
    trackers.
    """

    port: int
    protocol: int


def parse_flow_line(line: str) -> FlowRecord:
    """Parse one flow log line.

    Args:
        line: Raw flow log line.

    Returns:
        Flow record with destination port and protocol number.

    Raises:
        MalformedFlowLineError: If the line has fewer than 8 fields or the
            port or protocol field is not an integer.
    """
    fields = line.split()
    if len(fields) < MIN_FIELDS:
        raise MalformedFlowLineError(
            "Skipping Line because flow log is not in correct format",
            reason="too_few_fields",
            details={"fields": len(fields)},
        )

    try:
        port = parse_int(fields[PORT_FIELD])
        protocol = parse_int(fields[PROTOCOL_FIELD])
    except ValueError as e:
        raise MalformedFlowLineError(
            "Skipping Line because of port or protocol are not integer",
            reason="non_integer_field",
            details={"port": fields[PORT_FIELD], "protocol": fields[PROTOCOL_FIELD]},
            cause=e,
        ) from e

    return FlowRecord(port=port, protocol=protocol)


class FlowLogReader:
    """Lazily read lines from a flow log file.

    Usage:
        with FlowLogReader(path) as reader:
            for line in reader.lines():
                ...
    """

    def __init__(self, path: Path, encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding
        self._file: TextIO | None = None

    def open(self) -> None:
        """Open the flow log.

        Raises:
            MissingMandatoryFileError: If the file is absent or unreadable.
        """
        try:
            self._file = open(self.path, encoding=self.encoding, errors="replace")
        except OSError as e:
            logger.error("Cannot read flow log", path=str(self.path), error=str(e))
            raise MissingMandatoryFileError(
                "Flow Path file does not exist. Stopping system",
                details={"path": str(self.path)},
                cause=e,
            ) from e
        logger.info("Opened flow log", path=str(self.path))

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "FlowLogReader":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def lines(self) -> Iterator[str]:
        """Yield lines without their line terminator, in file order."""
        if self._file is None:
            raise RuntimeError("FlowLogReader is not open")
        for line in self._file:
            yield line.rstrip("\r\n")
