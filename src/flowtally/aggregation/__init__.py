"""Counting of flow records per tag and per port/protocol combination."""

from flowtally.aggregation.orchestrator import CountingOrchestrator, OrchestratorMode, ResultSet
from flowtally.aggregation.trackers import (
    CountTable,
    PortProtocolKey,
    PortProtocolTracker,
    TaggingTracker,
    Tracker,
)

__all__ = [
    # Orchestration
    "CountingOrchestrator",
    "OrchestratorMode",
    "ResultSet",
    # Trackers
    "Tracker",
    "CountTable",
    "PortProtocolKey",
    "PortProtocolTracker",
    "TaggingTracker",
]
