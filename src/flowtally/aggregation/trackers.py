"""Occurrence counters for flow records.

Two trackers consume every (port, protocol number) record:

- PortProtocolTracker counts each (port, protocol name) combination
- TaggingTracker counts each tag from the lookup table

They treat an out-of-range protocol number differently. The port/protocol
tracker raises so the line is reported, while the tagging tracker skips
the record without a trace.
"""

from abc import ABC, abstractmethod
from collections.abc import Hashable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Generic, TypeVar

from flowtally.common.logging import get_logger
from flowtally.enrichment.protocol import ProtocolResolver, is_valid_protocol_number
from flowtally.enrichment.tags import TagLookup

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True, slots=True)
class PortProtocolKey:
    """Key for port/protocol counts."""

    port: int
    protocol: str

    def __str__(self) -> str:
        return f"{self.port},{self.protocol}"


class CountTable(Generic[K]):
    """Counter keyed by K that remembers first-seen order.

    A key starts at 1 on its first occurrence and grows by 1 on each
    later one.
    """

    def __init__(self) -> None:
        self._counts: dict[K, int] = {}

    def increment(self, key: K) -> int:
        """Add one occurrence of key and return its new count."""
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        return count

    def items(self) -> Iterator[tuple[K, int]]:
        return iter(self._counts.items())

    def as_mapping(self) -> Mapping[K, int]:
        """Read-only view of the counts."""
        return MappingProxyType(self._counts)

    def __len__(self) -> int:
        return len(self._counts)


class Tracker(ABC):
    """Abstract base class for record trackers."""

    @abstractmethod
    def record(self, port: int, protocol_number: int) -> None:
        """Count one flow record."""
        ...

    @abstractmethod
    def snapshot(self) -> list[str]:
        """Return the formatted counts, one line per distinct key."""
        ...


class PortProtocolTracker(Tracker):
    """Count occurrences of each port and protocol combination."""

    def __init__(self, resolver: ProtocolResolver) -> None:
        self._resolver = resolver
        self._counts: CountTable[PortProtocolKey] = CountTable()

    @property
    def counts(self) -> Mapping[PortProtocolKey, int]:
        return self._counts.as_mapping()

    def __len__(self) -> int:
        return len(self._counts)

    def record(self, port: int, protocol_number: int) -> None:
        """Count a record under its (port, protocol name) key.

        Raises:
            OutOfRangeProtocolError: If protocol_number is outside 0-255.
        """
        key = PortProtocolKey(port, self._resolver.resolve(protocol_number))
        self._counts.increment(key)

    def snapshot(self) -> list[str]:
        """Return "port,protocol,count" lines."""
        return [f"{key},{count}" for key, count in self._counts.items()]


class TaggingTracker(Tracker):
    """Count occurrences of each tag.

    Records with a protocol number outside 0-255 cannot be tagged and
    are ignored without raising.
    """

    def __init__(self, lookup: TagLookup, resolver: ProtocolResolver) -> None:
        self._lookup = lookup
        self._resolver = resolver
        self._counts: CountTable[str] = CountTable()

    @property
    def counts(self) -> Mapping[str, int]:
        return self._counts.as_mapping()

    def __len__(self) -> int:
        return len(self._counts)

    def record(self, port: int, protocol_number: int) -> None:
        """Count a record under the tag of its (port, protocol name)."""
        if not is_valid_protocol_number(protocol_number):
            return

        tag = self._lookup.tag_for(port, self._resolver.resolve(protocol_number))
        self._counts.increment(tag)

    def snapshot(self) -> list[str]:
        """Return "tag,count" lines."""
        logger.debug("Building tag count snapshot", tags=len(self._counts))
        return [f"{tag},{count}" for tag, count in self._counts.items()]
