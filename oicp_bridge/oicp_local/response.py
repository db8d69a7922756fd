"""Response side of the OICP correlation protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from .errors import InvalidFieldError, MissingMandatoryFieldError
from .ids import EventTrackingId, ProcessId
from .request import ARequest, utc_now

MANDATORY_FIELDS = ("response_timestamp", "event_tracking_id", "process_id", "runtime")


@dataclass(frozen=True, slots=True)
class TransportInfo:
    """HTTP-level details of the exchange, kept for diagnostics."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResponseMetadata:
    """Timing and correlation data every response carries.

    All four leading fields are mandatory: a response without a process id
    or a measured runtime means the handler producing it is broken.
    """

    response_timestamp: datetime
    event_tracking_id: EventTrackingId
    process_id: ProcessId
    runtime: timedelta
    request: Optional[ARequest] = None
    http_response: Optional[TransportInfo] = None
    custom_data: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        for name in MANDATORY_FIELDS:
            if getattr(self, name) is None:
                raise MissingMandatoryFieldError(name)
        if self.runtime < timedelta(0):
            raise InvalidFieldError(f"The runtime must not be negative: {self.runtime}!")

    @classmethod
    def for_request(
        cls,
        request: Optional[ARequest],
        process_id: ProcessId,
        runtime: timedelta,
        *,
        event_tracking_id: Optional[EventTrackingId] = None,
        response_timestamp: Optional[datetime] = None,
        http_response: Optional[TransportInfo] = None,
        custom_data: Optional[Mapping[str, Any]] = None,
    ) -> "ResponseMetadata":
        """Build metadata answering ``request``.

        The request's event tracking id is copied unchanged.  When no request
        could be parsed a fresh tracking id is used unless one is given.
        """
        if request is not None:
            event_tracking_id = request.event_tracking_id
        return cls(
            response_timestamp=response_timestamp or utc_now(),
            event_tracking_id=event_tracking_id or EventTrackingId.new(),
            process_id=process_id,
            runtime=runtime,
            request=request,
            http_response=http_response,
            custom_data=custom_data,
        )

    def to_builder(self) -> "ResponseBuilder":
        return ResponseBuilder.from_metadata(self)


class AResponse:
    """Base of all OICP responses: gives access to the embedded metadata."""

    __slots__ = ()

    meta: ResponseMetadata

    @property
    def response_timestamp(self) -> datetime:
        return self.meta.response_timestamp

    @property
    def event_tracking_id(self) -> EventTrackingId:
        return self.meta.event_tracking_id

    @property
    def process_id(self) -> ProcessId:
        return self.meta.process_id

    @property
    def runtime(self) -> timedelta:
        return self.meta.runtime

    @property
    def request(self) -> Optional[ARequest]:
        return self.meta.request

    @property
    def http_response(self) -> Optional[TransportInfo]:
        return self.meta.http_response

    @property
    def custom_data(self) -> Optional[Mapping[str, Any]]:
        return self.meta.custom_data


class ResponseBuilder:
    """Mutable mirror of :class:`ResponseMetadata`."""

    def __init__(
        self,
        response_timestamp: Optional[datetime] = None,
        event_tracking_id: Optional[EventTrackingId] = None,
        process_id: Optional[ProcessId] = None,
        runtime: Optional[timedelta] = None,
        request: Optional[ARequest] = None,
        http_response: Optional[TransportInfo] = None,
        custom_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.response_timestamp = response_timestamp
        self.event_tracking_id = event_tracking_id
        self.process_id = process_id
        self.runtime = runtime
        self.request = request
        self.http_response = http_response
        self.custom_data = custom_data

    @classmethod
    def from_metadata(cls, meta: ResponseMetadata) -> "ResponseBuilder":
        return cls(
            meta.response_timestamp,
            meta.event_tracking_id,
            meta.process_id,
            meta.runtime,
            meta.request,
            meta.http_response,
            meta.custom_data,
        )

    def answer(self, request: ARequest) -> "ResponseBuilder":
        """Attach ``request`` and take over its event tracking id."""
        self.request = request
        self.event_tracking_id = request.event_tracking_id
        return self

    def to_immutable(self) -> ResponseMetadata:
        for name in MANDATORY_FIELDS:
            if getattr(self, name) is None:
                raise MissingMandatoryFieldError(name)
        return ResponseMetadata(
            response_timestamp=self.response_timestamp,
            event_tracking_id=self.event_tracking_id,
            process_id=self.process_id,
            runtime=self.runtime,
            request=self.request,
            http_response=self.http_response,
            custom_data=self.custom_data,
        )
