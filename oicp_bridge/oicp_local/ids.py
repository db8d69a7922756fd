"""Identifier value types shared by OICP requests and responses."""

from __future__ import annotations

import uuid

from .errors import ParseError


class _Id(str):
    """Immutable textual identifier."""

    label = "identification"

    @classmethod
    def parse(cls, text: object, *, field: str | None = None):
        """Return ``text`` as an identifier or raise :class:`ParseError`."""
        if not isinstance(text, str) or not text.strip():
            raise ParseError(f"The given {cls.label} must not be empty!", field=field)
        return cls(text.strip())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str.__repr__(self)})"


class ProcessId(_Id):
    """Server-assigned correlation id of a single request/response exchange."""

    label = "process identification"

    @classmethod
    def new(cls) -> "ProcessId":
        return cls(str(uuid.uuid4()))


class EventTrackingId(_Id):
    """Caller-assigned correlation id spanning a multi-hop call chain."""

    label = "event tracking identification"

    @classmethod
    def new(cls) -> "EventTrackingId":
        return cls(str(uuid.uuid4()))


class SessionId(_Id):
    label = "charging session identification"

    @classmethod
    def new(cls) -> "SessionId":
        return cls(str(uuid.uuid4()))


class CPOPartnerSessionId(_Id):
    label = "CPO partner session identification"


class EMPPartnerSessionId(_Id):
    label = "EMP partner session identification"


class EVSEId(_Id):
    label = "EVSE identification"


class ProviderId(_Id):
    label = "e-mobility provider identification"


class PartnerProductId(_Id):
    label = "partner product identification"
