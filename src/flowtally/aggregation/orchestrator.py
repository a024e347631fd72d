"""Routing of flow records to the active trackers."""

from dataclasses import dataclass, field
from enum import Enum

from flowtally.aggregation.trackers import PortProtocolTracker, TaggingTracker
from flowtally.common.logging import get_logger
from flowtally.enrichment.protocol import ProtocolResolver
from flowtally.enrichment.tags import TagLookup

logger = get_logger(__name__)


class OrchestratorMode(str, Enum):
    """Whether tag counting is part of the run."""

    NO_LOOKUP_TABLE = "no_lookup_table"
    WITH_LOOKUP_TABLE = "with_lookup_table"


@dataclass
class ResultSet:
    """Formatted counts handed to the result writer.

    tag_counts is None when the run had no lookup table, and an empty
    list when it had one but counted nothing.
    """

    port_protocol_counts: list[str] = field(default_factory=list)
    tag_counts: list[str] | None = None

    @property
    def has_tag_section(self) -> bool:
        return bool(self.tag_counts)

    @property
    def is_empty(self) -> bool:
        return not self.port_protocol_counts and not self.tag_counts


class CountingOrchestrator:
    """Feed each flow record to the trackers and collect their results.

    The mode is chosen once from whether a lookup table was supplied.
    """

    def __init__(
        self,
        resolver: ProtocolResolver,
        lookup: TagLookup | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            resolver: Shared protocol resolver.
            lookup: Tag lookup. Tag counting is disabled when None.
        """
        self.port_protocol_tracker = PortProtocolTracker(resolver)
        self.tagging_tracker: TaggingTracker | None = None

        if lookup is not None:
            self.mode = OrchestratorMode.WITH_LOOKUP_TABLE
            self.tagging_tracker = TaggingTracker(lookup, resolver)
        else:
            self.mode = OrchestratorMode.NO_LOOKUP_TABLE

        logger.debug("Orchestrator ready", mode=self.mode.value)

    @property
    def tagging_enabled(self) -> bool:
        return self.mode is OrchestratorMode.WITH_LOOKUP_TABLE

    def process_record(self, port: int, protocol_number: int) -> None:
        """Count one record in every active tracker.

        Raises:
            OutOfRangeProtocolError: From the port/protocol tracker. The
                tagging tracker has already ignored the record by then.
        """
        if self.tagging_tracker is not None:
            self.tagging_tracker.record(port, protocol_number)
        self.port_protocol_tracker.record(port, protocol_number)

    def finalize(self) -> ResultSet:
        """Build the result set from the tracker snapshots."""
        result = ResultSet(port_protocol_counts=self.port_protocol_tracker.snapshot())
        if self.tagging_tracker is not None:
            result.tag_counts = self.tagging_tracker.snapshot()

        logger.info(
            "Counting finished",
            mode=self.mode.value,
            port_protocol_combinations=len(result.port_protocol_counts),
            tags=len(result.tag_counts) if result.tag_counts is not None else None,
        )
        return result
