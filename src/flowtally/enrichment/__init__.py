"""Reference tables - protocol number names and port/protocol tags."""

from flowtally.enrichment.protocol import ProtocolResolver, load_protocol_table
from flowtally.enrichment.tags import UNTAGGED, TagLookup, load_tag_table

__all__ = [
    "ProtocolResolver",
    "load_protocol_table",
    "TagLookup",
    "load_tag_table",
    "UNTAGGED",
]
