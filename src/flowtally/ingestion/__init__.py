"""Flow log reading and the per-line processing driver."""

from flowtally.ingestion.processor import FlowLogProcessor, ProcessingStats
from flowtally.ingestion.reader import FlowLogReader, FlowRecord, parse_flow_line

__all__ = [
    "FlowLogProcessor",
    "ProcessingStats",
    "FlowLogReader",
    "FlowRecord",
    "parse_flow_line",
]
