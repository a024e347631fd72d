"""Unit tests for the port/protocol and tagging trackers."""

import itertools
import random

import pytest

from flowtally.aggregation.trackers import (
    CountTable,
    PortProtocolKey,
    PortProtocolTracker,
    TaggingTracker,
)
from flowtally.common.exceptions import OutOfRangeProtocolError
from flowtally.enrichment.protocol import ProtocolResolver
from flowtally.enrichment.tags import TagLookup


@pytest.mark.unit
class TestCountTable:
    """Test cases for CountTable."""

    def test_first_occurrence_starts_at_one(self):
        """Test a new key starts at 1."""
        table: CountTable[str] = CountTable()
        assert table.increment("a") == 1
        assert table.as_mapping()["a"] == 1

    def test_increment(self):
        """Test later occurrences add one each."""
        table: CountTable[str] = CountTable()
        for _ in range(5):
            table.increment("a")
        table.increment("b")

        assert dict(table.items()) == {"a": 5, "b": 1}
        assert len(table) == 2

    def test_preserves_first_seen_order(self):
        """Test iteration follows first occurrence."""
        table: CountTable[str] = CountTable()
        for key in ["b", "a", "b", "c", "a"]:
            table.increment(key)

        assert [k for k, _ in table.items()] == ["b", "a", "c"]

    def test_mapping_is_read_only(self):
        """Test the mapping view cannot be modified."""
        table: CountTable[str] = CountTable()
        table.increment("a")

        with pytest.raises(TypeError):
            table.as_mapping()["a"] = 10  # type: ignore[index]


@pytest.mark.unit
class TestPortProtocolKey:
    """Test cases for PortProtocolKey."""

    def test_value_equality(self):
        """Test keys compare and hash by value."""
        assert PortProtocolKey(443, "tcp") == PortProtocolKey(443, "tcp")
        assert hash(PortProtocolKey(443, "tcp")) == hash(PortProtocolKey(443, "tcp"))
        assert PortProtocolKey(443, "tcp") != PortProtocolKey(443, "udp")

    def test_str(self):
        """Test string form."""
        assert str(PortProtocolKey(22, "tcp")) == "22,tcp"


@pytest.mark.unit
class TestPortProtocolTracker:
    """Test cases for PortProtocolTracker."""

    @pytest.fixture
    def tracker(self, resolver: ProtocolResolver) -> PortProtocolTracker:
        return PortProtocolTracker(resolver)

    def test_counts_by_resolved_name(self, tracker: PortProtocolTracker):
        """Test records are keyed by port and protocol name."""
        tracker.record(443, 6)
        tracker.record(443, 6)
        tracker.record(443, 17)

        assert tracker.counts[PortProtocolKey(443, "tcp")] == 2
        assert tracker.counts[PortProtocolKey(443, "udp")] == 1
        assert tracker.snapshot() == ["443,tcp,2", "443,udp,1"]

    def test_unnamed_protocol_uses_decimal(self, tracker: PortProtocolTracker):
        """Test unnamed protocols appear as their number."""
        tracker.record(0, 50)
        assert tracker.snapshot() == ["0,50,1"]

    def test_out_of_range_propagates(self, tracker: PortProtocolTracker):
        """Test out-of-range protocol numbers raise and are not counted."""
        with pytest.raises(OutOfRangeProtocolError):
            tracker.record(443, 999)

        assert len(tracker) == 0
        assert tracker.snapshot() == []

    def test_empty_snapshot(self, tracker: PortProtocolTracker):
        """Test no records gives an empty snapshot."""
        assert tracker.snapshot() == []


@pytest.mark.unit
class TestTaggingTracker:
    """Test cases for TaggingTracker."""

    @pytest.fixture
    def tracker(self, lookup: TagLookup, resolver: ProtocolResolver) -> TaggingTracker:
        return TaggingTracker(lookup, resolver)

    def test_counts_by_tag(self, tracker: TaggingTracker):
        """Test pairs sharing a tag are counted together."""
        tracker.record(443, 6)
        tracker.record(25, 6)
        tracker.record(53, 17)

        assert tracker.counts == {"sv_P1": 2, "dns": 1}
        assert tracker.snapshot() == ["sv_P1,2", "dns,1"]

    def test_unknown_pairs_are_untagged(self, tracker: TaggingTracker):
        """Test misses are counted under Untagged."""
        tracker.record(8080, 6)
        tracker.record(443, 17)
        tracker.record(443, 99)

        assert tracker.snapshot() == ["Untagged,3"]

    @pytest.mark.parametrize("protocol", [-1, 256, 999])
    def test_out_of_range_ignored(self, tracker: TaggingTracker, protocol: int):
        """Test out-of-range protocol numbers are silently ignored."""
        tracker.record(443, protocol)

        assert len(tracker) == 0
        assert tracker.snapshot() == []


@pytest.mark.unit
class TestTrackerDivergence:
    """The two trackers react differently to invalid protocol numbers."""

    def test_out_of_range_divergence(self, lookup: TagLookup, resolver: ProtocolResolver):
        """Test tagging ignores what port/protocol counting rejects."""
        tagging = TaggingTracker(lookup, resolver)
        port_protocol = PortProtocolTracker(resolver)

        tagging.record(443, 300)
        with pytest.raises(OutOfRangeProtocolError):
            port_protocol.record(443, 300)

        assert tagging.snapshot() == []
        assert port_protocol.snapshot() == []


@pytest.mark.unit
class TestOrderIndependence:
    """Counting must not depend on record order."""

    RECORDS = [
        (443, 6), (443, 6), (25, 6), (53, 17), (53, 17), (53, 17),
        (8080, 6), (0, 1), (443, 17), (22, 50),
    ]

    def _counts(self, records, lookup, resolver):
        tagging = TaggingTracker(lookup, resolver)
        port_protocol = PortProtocolTracker(resolver)
        for port, protocol in records:
            tagging.record(port, protocol)
            port_protocol.record(port, protocol)
        return dict(tagging.counts), dict(port_protocol.counts)

    def test_permutations_give_same_counts(self, lookup: TagLookup, resolver: ProtocolResolver):
        """Test shuffled inputs produce identical count tables."""
        expected = self._counts(self.RECORDS, lookup, resolver)

        rng = random.Random(1234)
        for _ in range(20):
            shuffled = list(self.RECORDS)
            rng.shuffle(shuffled)
            assert self._counts(shuffled, lookup, resolver) == expected

    def test_small_permutations(self, lookup: TagLookup, resolver: ProtocolResolver):
        """Test every ordering of a small multiset."""
        records = [(443, 6), (443, 6), (53, 17), (1, 6)]
        expected = self._counts(records, lookup, resolver)

        for ordering in itertools.permutations(records):
            assert self._counts(ordering, lookup, resolver) == expected
