"""flowtally - Flow log tag and port/protocol counter.

Reads network flow logs, classifies each record's destination port and
protocol against an optional lookup table, and reports counts per tag
and per port/protocol combination.
"""

__version__ = "0.1.0"
