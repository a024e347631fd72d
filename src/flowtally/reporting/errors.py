"""Error log for skipped flow log lines and degraded features.

The error log is a plain text file, one diagnostic per line, appended
to across runs. It is opened on the first report so a clean run leaves
no file behind.
"""

from pathlib import Path
from types import TracebackType
from typing import TextIO

from flowtally.common.exceptions import ErrorLogWriteError
from flowtally.common.logging import get_logger

logger = get_logger(__name__)


class ErrorSink:
    """Append-only destination for recoverable errors of one run."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.count = 0
        self._file: TextIO | None = None

    def _open(self) -> TextIO:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return open(self.path, "a", encoding="utf-8")
        except OSError as e:
            raise ErrorLogWriteError(
                details={"path": str(self.path)},
                cause=e,
            ) from e

    def report(self, message: str) -> None:
        """Append one diagnostic line.

        Raises:
            ErrorLogWriteError: If the error log cannot be written.
        """
        if self._file is None:
            self._file = self._open()
        try:
            self._file.write(message.replace("\n", " ") + "\n")
        except OSError as e:
            raise ErrorLogWriteError(details={"path": str(self.path)}, cause=e) from e
        self.count += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info("Wrote error log", path=str(self.path), entries=self.count)

    def __enter__(self) -> "ErrorSink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
