"""Tokenizer for the installer's `[keptn|LEVEL] [timestamp] message` log markers."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from keptninstaller.constants import SUCCESS_MESSAGE
from keptninstaller.models import LogOutcome

LEVEL_PATTERN = re.compile(r"\[keptn\|([a-zA-Z]+)\]")
PREFIX_PATTERN = re.compile(r"\[keptn\|[a-zA-Z]+\]\s*\[[^\]]*\]")

ERROR_SEVERITIES = {"quiet", "error", "fatal"}
SEVERITY_LEVELS = {
    "quiet": logging.ERROR,
    "error": logging.ERROR,
    "fatal": logging.ERROR,
    "info": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
}


@dataclass(frozen=True)
class LogMarker:
    severity: str
    message: str

    @property
    def is_error(self) -> bool:
        return self.severity in ERROR_SEVERITIES

    @property
    def is_success(self) -> bool:
        return self.message == SUCCESS_MESSAGE

    @property
    def log_level(self) -> int:
        return SEVERITY_LEVELS.get(self.severity, logging.INFO)


def parse_marker(line: str) -> Optional[LogMarker]:
    """Returns the marker carried by ``line``, or None for plain output."""
    match = LEVEL_PATTERN.search(line)
    if match is None:
        return None

    severity = match.group(1).strip().lower()
    stripped = PREFIX_PATTERN.sub("", line, count=1)
    if stripped == line:
        stripped = line[match.end():]
    return LogMarker(severity=severity, message=stripped.strip())


def consume_line(outcome: LogOutcome, line: str) -> Optional[LogMarker]:
    """Folds one raw line into the stream outcome and returns its marker, if any."""
    outcome.line_count += 1
    marker = parse_marker(line)
    if marker is None:
        return None
    if marker.is_error:
        outcome.error_seen = True
    if marker.is_success:
        outcome.success_seen = True
    return marker
