"""Per-line driver for flow log processing.

Reads the flow log in document order, parses each line and hands the
record to the counting orchestrator. Lines that cannot be counted are
reported to the error log and processing continues.
"""

from collections import Counter
from dataclasses import dataclass, field

from flowtally.aggregation.orchestrator import CountingOrchestrator
from flowtally.common.exceptions import (
    MalformedFlowLineError,
    OutOfRangeProtocolError,
    RecoverableLineError,
)
from flowtally.common.logging import get_logger
from flowtally.common.metrics import FLOW_LINES_READ, FLOW_LINES_SKIPPED, RECORDS_COUNTED
from flowtally.ingestion.reader import FlowLogReader, parse_flow_line
from flowtally.reporting.errors import ErrorSink

logger = get_logger(__name__)


@dataclass
class ProcessingStats:
    """Line counters for one flow log."""

    lines_read: int = 0
    records_counted: int = 0
    lines_skipped: int = 0
    skipped_by_reason: Counter[str] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, object]:
        return {
            "lines_read": self.lines_read,
            "records_counted": self.records_counted,
            "lines_skipped": self.lines_skipped,
            "skipped_by_reason": dict(self.skipped_by_reason),
        }


def format_skip_message(error: RecoverableLineError, line: str) -> str:
    """Build the error log entry for a skipped line."""
    if isinstance(error, OutOfRangeProtocolError):
        return (
            "Skipping Line because protocol number is not in range [0-255] "
            f"|| {line} || Number: {error.protocol_number}"
        )
    return f"{error.message} || {line} ||"


class FlowLogProcessor:
    """Drive flow log lines through the counting orchestrator."""

    def __init__(self, orchestrator: CountingOrchestrator, error_sink: ErrorSink) -> None:
        self.orchestrator = orchestrator
        self.error_sink = error_sink
        self.stats = ProcessingStats()

    def process_line(self, line: str) -> bool:
        """Process one raw line.

        Returns:
            True if the line was counted, False if it was blank or skipped.

        Raises:
            ErrorLogWriteError: If a skipped line cannot be reported.
        """
        if not line.strip():
            return False

        self.stats.lines_read += 1
        FLOW_LINES_READ.inc()

        try:
            record = parse_flow_line(line)
            self.orchestrator.process_record(record.port, record.protocol)
        except (MalformedFlowLineError, OutOfRangeProtocolError) as e:
            self._skip(e, line)
            return False

        self.stats.records_counted += 1
        RECORDS_COUNTED.inc()
        return True

    def _skip(self, error: RecoverableLineError, line: str) -> None:
        self.stats.lines_skipped += 1
        self.stats.skipped_by_reason[error.reason] += 1
        FLOW_LINES_SKIPPED.labels(reason=error.reason).inc()

        logger.debug("Skipping flow log line", reason=error.reason, line_number=self.stats.lines_read)
        self.error_sink.report(format_skip_message(error, line))

    def process(self, reader: FlowLogReader) -> ProcessingStats:
        """Process every line of an open reader."""
        logger.info("Starting flow log file processing", path=str(reader.path))

        for line in reader.lines():
            self.process_line(line)

        logger.info("Flow log parsing successfully complete", **self.stats.to_dict())
        return self.stats
