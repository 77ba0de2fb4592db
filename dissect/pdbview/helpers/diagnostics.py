from __future__ import annotations

import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """A single human readable finding about a PDB file.

    Attributes:
        message: The message to show.
        level: Either ``logging.INFO`` for normal findings or ``logging.ERROR`` for errors.
        stream: The index of the stream the finding is about, if any.
    """

    message: str
    level: int = logging.INFO
    stream: int | None = None

    @property
    def is_error(self) -> bool:
        return self.level >= logging.ERROR

    def __str__(self) -> str:
        return self.message


def _log(level: int, message: str, stream: int | None) -> None:
    if stream is None:
        log.log(level, "%s", message)
    else:
        log.log(level, "Stream %d: %s", stream, message)


def info(message: str, stream: int | None = None) -> Diagnostic:
    _log(logging.INFO, message, stream)
    return Diagnostic(message, logging.INFO, stream)


def error(message: str, stream: int | None = None) -> Diagnostic:
    _log(logging.WARNING, message, stream)
    return Diagnostic(message, logging.ERROR, stream)
