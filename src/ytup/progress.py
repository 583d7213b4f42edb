# Upload progress reporting.
# Created: 2026-10-18

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from typing import TextIO

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class UploadProgress:
    """Report upload progress whenever the whole-number percentage grows.

    On a terminal the line is rewritten in place; otherwise each step is
    logged.
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self.last_percent = 0
        self._wrote_line = False

    @property
    def interactive(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def __call__(self, current: int, total: int) -> None:
        if total <= 0:
            return
        percent = current * 100 // total
        if percent > self.last_percent:
            msg = (
                f"Uploading... ({current // 1024} KB / {total // 1024} KB uploaded, {percent}%)"
            )
            if self.interactive:
                self.stream.write(f"\x1b[K{msg}\r")
                self.stream.flush()
                self._wrote_line = True
            else:
                logger.info(msg)
        self.last_percent = percent

    def finish(self) -> None:
        """End the in-place progress line, if one was written."""
        if self._wrote_line:
            self.stream.write("\n")
            self.stream.flush()
            self._wrote_line = False


def summarize(size: int, elapsed: timedelta) -> str:
    """One-line upload summary with throughput as minutes per 100 MB."""
    megabytes = size / _MB
    minutes = elapsed.total_seconds() / 60
    per_100mb = minutes * 100 / megabytes if megabytes else 0.0
    return f"Uploaded {megabytes:.1f} MB in {elapsed}, {per_100mb:.1f} minutes for 100MB"
