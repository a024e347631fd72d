"""Report file writer."""

from pathlib import Path
from typing import Final

from flowtally.aggregation.orchestrator import ResultSet
from flowtally.common.exceptions import OutputWriteError
from flowtally.common.logging import get_logger

logger = get_logger(__name__)

TAG_COUNT_HEADER: Final[str] = "tag,count"
PORT_PROTOCOL_HEADER: Final[str] = "port,protocol,count"


def render_report(result: ResultSet) -> str:
    """Render the result set as report text.

    Each section is written only when it has entries, tag counts first.
    """
    lines: list[str] = []

    if result.has_tag_section:
        lines.append(TAG_COUNT_HEADER)
        lines.extend(result.tag_counts or [])

    if result.port_protocol_counts:
        lines.append(PORT_PROTOCOL_HEADER)
        lines.extend(result.port_protocol_counts)

    return "".join(f"{line}\n" for line in lines)


class ResultWriter:
    """Write a result set to the report file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def write(self, result: ResultSet) -> None:
        """Write the report, replacing any previous file.

        Raises:
            OutputWriteError: If the file cannot be written.
        """
        if result.is_empty:
            logger.warning("No flow records were counted, writing an empty report", path=str(self.path))
        content = render_report(result)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            logger.error("Not able to add data to output file", path=str(self.path), error=str(e))
            raise OutputWriteError(
                "Missing output file or incorrect path",
                details={"path": str(self.path)},
                cause=e,
            ) from e

        logger.info(
            "Output written",
            path=str(self.path),
            tag_rows=len(result.tag_counts or []),
            port_protocol_rows=len(result.port_protocol_counts),
        )
