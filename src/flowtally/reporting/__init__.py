"""Report file and error log destinations."""

from flowtally.reporting.errors import ErrorSink
from flowtally.reporting.writer import ResultWriter, render_report

__all__ = ["ErrorSink", "ResultWriter", "render_report"]
