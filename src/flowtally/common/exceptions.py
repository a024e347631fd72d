"""Custom exceptions for flowtally.

Provides a hierarchy of exceptions classified by how the run reacts
to them:

- fatal: the run stops and no report is written
- recoverable: the offending line is skipped and reported to the error log
- degraded: a best-effort feature is switched off for the whole run
"""

from typing import Any, Literal

Severity = Literal["fatal", "recoverable", "degraded"]


class FlowTallyError(Exception):
    """Base exception for all flowtally errors."""

    severity: Severity = "fatal"
    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize exception with optional details.

        Args:
            message: Human-readable error message.
            details: Additional error details for debugging.
            cause: Original exception that caused this error.
        """
        self.message = message or self.message
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    @property
    def is_fatal(self) -> bool:
        """Check if this error must abort the run."""
        return self.severity == "fatal"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        result = {
            "error": self.error_code,
            "severity": self.severity,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# Fatal errors
class MissingMandatoryFileError(FlowTallyError):
    """A required input file is absent or unreadable."""

    error_code = "MISSING_MANDATORY_FILE"
    message = "Mandatory input file is missing or unreadable"


class OutputWriteError(FlowTallyError):
    """The report could not be written."""

    error_code = "OUTPUT_WRITE_FAILED"
    message = "Unable to write output file"


class ErrorLogWriteError(FlowTallyError):
    """The error log could not be opened or appended to."""

    error_code = "ERROR_LOG_WRITE_FAILED"
    message = "Unable to write to error log"


class ConfigurationError(FlowTallyError):
    """Configuration error."""

    error_code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


# Degraded-mode errors
class MissingFileError(FlowTallyError):
    """An optional input file is absent or unreadable."""

    severity: Severity = "degraded"
    error_code = "MISSING_OPTIONAL_FILE"
    message = "Optional input file is missing or unreadable"


# Recoverable, per-line errors
class RecoverableLineError(FlowTallyError):
    """A single flow log line cannot be counted."""

    severity: Severity = "recoverable"
    error_code = "LINE_SKIPPED"
    message = "Flow log line skipped"
    reason: str = "unknown"


class MalformedFlowLineError(RecoverableLineError):
    """Flow log line does not have the expected shape."""

    error_code = "MALFORMED_FLOW_LINE"
    message = "Flow log line is not in the expected format"

    def __init__(
        self,
        message: str | None = None,
        reason: str = "malformed",
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, details=details, cause=cause)
        self.reason = reason


class OutOfRangeProtocolError(RecoverableLineError):
    """Protocol number is outside 0-255."""

    error_code = "PROTOCOL_OUT_OF_RANGE"
    message = "Protocol numbers between 0 to 255 are valid"
    reason = "protocol_out_of_range"

    def __init__(self, protocol_number: int) -> None:
        super().__init__(
            f"Protocol number {protocol_number} is not in range [0-255]",
            details={"protocol_number": protocol_number},
        )
        self.protocol_number = protocol_number
