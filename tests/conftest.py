"""Pytest configuration and fixtures for flowtally tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from flowtally.common.config import get_settings
from flowtally.enrichment.protocol import ProtocolResolver
from flowtally.enrichment.tags import TagLookup


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Make every test read settings from a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Sample Data Fixtures
# =============================================================================


PROTOCOL_NUMBERS_CSV = """\
Decimal,Keyword,Protocol,IPv6 Extension Header,Reference
0,HOPOPT,IPv6 Hop-by-Hop Option,Y,[RFC8200]
1,ICMP,Internet Control Message,,[RFC792]
6,TCP,Transmission Control,,[RFC9293]
17,UDP,User Datagram,,[RFC768]
47,GRE,"Generic Routing Encapsulation, RFC 2784",,[RFC2784]
114,,any 0-hop protocol,,[Internet_Assigned_Numbers_Authority]
146-252,,Unassigned,,[Internet_Assigned_Numbers_Authority]
255,Reserved,,,[Internet_Assigned_Numbers_Authority]
"""

LOOKUP_TABLE_CSV = """\
dstport,protocol,tag
25,tcp,sv_P1
68,udp,sv_P2
23,tcp,sv_P1
31,udp,SV_P3
443,tcp,sv_P2
22,tcp,sv_P4
3389,tcp,sv_P5
0,icmp,sv_P5
110,tcp,email
993,tcp,email
143,tcp,email
"""


def flow_line(port: int | str, protocol: int | str, action: str = "ACCEPT") -> str:
    """Build a version 2 flow log line with the given dstport and protocol."""
    return (
        f"2 123456789012 eni-0a1b2c3d 10.0.1.201 198.51.100.2 49153 {port} {protocol} "
        f"25 20000 1620140761 1620140821 {action} OK"
    )


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write text to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def protocol_csv(write_file) -> Path:
    """Protocol reference file in IANA layout."""
    return write_file("protocol-numbers.csv", PROTOCOL_NUMBERS_CSV)


@pytest.fixture
def lookup_csv(write_file) -> Path:
    """Lookup table file."""
    return write_file("lookup_table.csv", LOOKUP_TABLE_CSV)


@pytest.fixture
def resolver() -> ProtocolResolver:
    """Resolver knowing icmp, tcp and udp."""
    return ProtocolResolver.from_mapping({1: "ICMP", 6: "TCP", 17: "UDP"})


@pytest.fixture
def lookup() -> TagLookup:
    """Small tag lookup."""
    return TagLookup.from_rows([
        ["443", "tcp", "sv_P1"],
        ["53", "udp", "dns"],
        ["25", "tcp", "sv_P1"],
    ])


@pytest.fixture
def make_flow_line() -> Callable[..., str]:
    """Factory for flow log lines."""
    return flow_line


@pytest.fixture
def flow_log(write_file) -> Callable[[list[str]], Path]:
    """Write flow log lines to flow_log.txt."""

    def _flow_log(lines: list[str]) -> Path:
        return write_file("flow_log.txt", "".join(f"{line}\n" for line in lines))

    return _flow_log
