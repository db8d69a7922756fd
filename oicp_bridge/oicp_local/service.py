"""Service layer interfaces for handling OICP operations.

Implementations of these abstract services contain the business logic for
commands received from roaming partners.  Transport adapters (the FastAPI
server in :mod:`oicp_bridge.api`) parse the wire payloads into the domain
objects defined in :mod:`.messages` and call into these services.

Expected business failures must be answered with the named acknowledgement
constructors, never by raising.  Anything raised is reported to the partner
as ``SystemError`` by the dispatcher.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .acknowledgement import Acknowledgement
from .messages import (
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    GetChargeDetailRecordsRequest,
    GetChargeDetailRecordsResponse,
)


class CPOService(ABC):
    """Charge point operator side of the remote reservation and start/stop commands."""

    @abstractmethod
    async def authorize_remote_reservation_start(
        self, request: AuthorizeRemoteReservationStartRequest
    ) -> Acknowledgement[AuthorizeRemoteReservationStartRequest]:
        """Reserve ``request.evse_id`` for the given identification."""

    @abstractmethod
    async def authorize_remote_reservation_stop(
        self, request: AuthorizeRemoteReservationStopRequest
    ) -> Acknowledgement[AuthorizeRemoteReservationStopRequest]:
        """Cancel the reservation ``request.session_id``."""

    @abstractmethod
    async def authorize_remote_start(
        self, request: AuthorizeRemoteStartRequest
    ) -> Acknowledgement[AuthorizeRemoteStartRequest]:
        """Start charging at ``request.evse_id`` on behalf of an EMP."""

    @abstractmethod
    async def authorize_remote_stop(
        self, request: AuthorizeRemoteStopRequest
    ) -> Acknowledgement[AuthorizeRemoteStopRequest]:
        """Stop the charging session ``request.session_id``."""


class CDRService(ABC):
    """Source of charge detail records for the paged CDR listing."""

    @abstractmethod
    async def get_charge_detail_records(
        self, request: GetChargeDetailRecordsRequest
    ) -> GetChargeDetailRecordsResponse:
        """Return one page of charge detail records."""
