"""Request side of the OICP correlation protocol."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from .ids import EventTrackingId, ProcessId

DEFAULT_REQUEST_TIMEOUT = timedelta(seconds=60)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class RequestMetadata:
    """Correlation data every request carries.

    ``process_id`` stays ``None`` until a downstream hop assigns one.
    ``cancellation_token`` is carried for the transport layer and never
    inspected here.
    """

    timestamp: datetime
    event_tracking_id: EventTrackingId
    request_timeout: timedelta = DEFAULT_REQUEST_TIMEOUT
    process_id: Optional[ProcessId] = None
    cancellation_token: Any = field(default=None, compare=False)
    custom_data: Optional[Mapping[str, Any]] = None

    @classmethod
    def create(
        cls,
        timestamp: Optional[datetime] = None,
        event_tracking_id: Optional[EventTrackingId] = None,
        request_timeout: Optional[timedelta] = None,
        process_id: Optional[ProcessId] = None,
        cancellation_token: Any = None,
        custom_data: Optional[Mapping[str, Any]] = None,
    ) -> "RequestMetadata":
        return cls(
            timestamp=timestamp or utc_now(),
            event_tracking_id=event_tracking_id or EventTrackingId.new(),
            request_timeout=DEFAULT_REQUEST_TIMEOUT if request_timeout is None else request_timeout,
            process_id=process_id,
            cancellation_token=cancellation_token,
            custom_data=custom_data,
        )


class ARequest(ABC):
    """Abstract base of all OICP requests.

    Concrete requests are frozen dataclasses with a ``meta`` field.  What
    makes two requests "equal" depends on the operation, so every subclass
    must define ``__eq__`` itself.
    """

    __slots__ = ()

    meta: RequestMetadata

    @property
    def timestamp(self) -> datetime:
        return self.meta.timestamp

    @property
    def event_tracking_id(self) -> EventTrackingId:
        return self.meta.event_tracking_id

    @property
    def process_id(self) -> Optional[ProcessId]:
        return self.meta.process_id

    @property
    def request_timeout(self) -> timedelta:
        return self.meta.request_timeout

    @property
    def cancellation_token(self) -> Any:
        return self.meta.cancellation_token

    @property
    def custom_data(self) -> Optional[Mapping[str, Any]]:
        return self.meta.custom_data

    def with_process_id(self, process_id: ProcessId):
        """Return a copy of this request stamped with ``process_id``."""
        return replace(self, meta=replace(self.meta, process_id=process_id))

    @abstractmethod
    def __eq__(self, other: object) -> bool:
        ...

    @abstractmethod
    def __hash__(self) -> int:
        ...
