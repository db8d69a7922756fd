"""Exception types raised or returned by the OICP message layer.

Business failures (unknown EVSE, invalid session, ...) are never modelled
as exceptions; they travel as :class:`~.status_code.StatusCode` values inside
an acknowledgement.  The classes below cover the two remaining cases: wire
input that could not be parsed, and programming errors detected while a
handler assembles a response.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    PARSING = "Parsing"
    CONSISTENCY = "Consistency"
    CONSTRUCTION = "Construction"


class OICPError(Exception):
    """Base class for all errors of this package."""

    kind: ErrorKind = ErrorKind.CONSTRUCTION


class ParseError(OICPError):
    """Malformed or schema-violating wire input.

    Returned (not raised) by the ``try_parse_*`` functions so that the
    transport layer can answer with a ``DataError`` acknowledgement.
    """

    kind = ErrorKind.PARSING

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class ConsistencyError(OICPError):
    """``Result`` and ``StatusCode.Code`` of an acknowledgement disagree."""

    kind = ErrorKind.CONSISTENCY


class MissingMandatoryFieldError(OICPError):
    """A mandatory field was left unset when freezing a builder."""

    def __init__(self, field: str) -> None:
        super().__init__(f"The mandatory field '{field}' must not be None!")
        self.field = field


class InvalidFieldError(OICPError, ValueError):
    """A field value violates an invariant of its type."""
