"""Prometheus metrics for flowtally runs.

flowtally is a batch job, so nothing is served over HTTP. The registry
is dumped to a textfile at the end of a run when configured, for
node_exporter's textfile collector.
"""

from pathlib import Path

from prometheus_client import CollectorRegistry, Counter, Info, write_to_textfile

REGISTRY = CollectorRegistry()

# Application info
APP_INFO = Info(
    "flowtally_run",
    "flowtally run information",
    registry=REGISTRY,
)

# Flow log metrics
FLOW_LINES_READ = Counter(
    "flowtally_flow_lines_read_total",
    "Total number of non-blank flow log lines read",
    registry=REGISTRY,
)

FLOW_LINES_SKIPPED = Counter(
    "flowtally_flow_lines_skipped_total",
    "Total number of flow log lines skipped",
    ["reason"],
    registry=REGISTRY,
)

RECORDS_COUNTED = Counter(
    "flowtally_records_counted_total",
    "Total number of flow records counted by the port/protocol tracker",
    registry=REGISTRY,
)

# Reference table metrics
REFERENCE_ROWS_LOADED = Counter(
    "flowtally_reference_rows_loaded_total",
    "Rows loaded from reference tables",
    ["table"],
    registry=REGISTRY,
)

REFERENCE_ROWS_SKIPPED = Counter(
    "flowtally_reference_rows_skipped_total",
    "Rows skipped while loading reference tables",
    ["table"],
    registry=REGISTRY,
)


def set_app_info(version: str, tagging: bool) -> None:
    """Set application info metric.

    Args:
        version: Application version.
        tagging: Whether the run had a lookup table.
    """
    APP_INFO.info({
        "version": version,
        "tagging": "enabled" if tagging else "disabled",
    })


def write_metrics(path: Path) -> None:
    """Write the metrics registry in Prometheus text format.

    write_to_textfile writes to a temporary file and renames it, so a
    scraper never sees a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
