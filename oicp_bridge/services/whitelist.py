"""Reference CPO service answering remote commands from a whitelist.

The :class:`WhitelistCPOService` does not talk to real charging stations.
It accepts remote reservations and remote starts whose identification (EVCO
id or RFID UID) is on a configured list, and keeps track of the reservations
and charging sessions it has granted so that later stop requests can be
matched against them.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

from oicp_bridge.oicp_local import (
    Acknowledgement,
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    CPOService,
    EVSEId,
    SessionId,
)

logger = logging.getLogger(__name__)


class WhitelistCPOService(CPOService):
    """Accept remote reservations and starts for known identifications only."""

    def __init__(self, allowed_identifications: Iterable[str] = ()) -> None:
        self._allowed = set(allowed_identifications)
        # session id -> EVSE the session was started at
        self._sessions: Dict[SessionId, EVSEId] = {}
        # reservation id -> (EVSE, identification holding it)
        self._reservations: Dict[SessionId, Tuple[EVSEId, str]] = {}

    def _reservation_at(self, evse_id: EVSEId) -> Optional[Tuple[SessionId, str]]:
        for reservation_id, (reserved_evse, holder) in self._reservations.items():
            if reserved_evse == evse_id:
                return reservation_id, holder
        return None

    # Reservations ----------------------------------------------------------

    async def authorize_remote_reservation_start(
        self, request: AuthorizeRemoteReservationStartRequest
    ) -> Acknowledgement[AuthorizeRemoteReservationStartRequest]:
        holder = request.identification.value
        if holder not in self._allowed:
            logger.info("Reservation of %s rejected: %s is not whitelisted", request.evse_id, holder)
            return Acknowledgement.no_valid_contract(
                request,
                session_id=request.session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        if request.evse_id in self._sessions.values():
            return Acknowledgement.evse_already_in_use_wrong_token(
                request,
                session_id=request.session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        existing = self._reservation_at(request.evse_id)
        if existing is not None and existing[1] != holder:
            logger.info("Reservation of %s rejected: held by another identification", request.evse_id)
            return Acknowledgement.evse_already_reserved(
                request,
                session_id=request.session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        # The same holder reserving again extends its reservation
        reservation_id = existing[0] if existing is not None else request.session_id or SessionId.new()
        self._reservations[reservation_id] = (request.evse_id, holder)
        logger.info(
            "Reservation of %s accepted (reservation=%s, duration=%s)",
            request.evse_id,
            reservation_id,
            request.duration,
        )
        return Acknowledgement.success(
            request,
            session_id=reservation_id,
            cpo_partner_session_id=request.cpo_partner_session_id,
            emp_partner_session_id=request.emp_partner_session_id,
        )

    async def authorize_remote_reservation_stop(
        self, request: AuthorizeRemoteReservationStopRequest
    ) -> Acknowledgement[AuthorizeRemoteReservationStopRequest]:
        reservation = self._reservations.get(request.session_id)
        if reservation is None or reservation[0] != request.evse_id:
            logger.info("Reservation stop for unknown reservation %s", request.session_id)
            return Acknowledgement.session_is_invalid(
                request,
                session_id=request.session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        del self._reservations[request.session_id]
        logger.info("Reservation %s at %s cancelled", request.session_id, request.evse_id)
        return Acknowledgement.success(
            request,
            session_id=request.session_id,
            cpo_partner_session_id=request.cpo_partner_session_id,
            emp_partner_session_id=request.emp_partner_session_id,
        )

    # Charging sessions -----------------------------------------------------

    async def authorize_remote_start(
        self, request: AuthorizeRemoteStartRequest
    ) -> Acknowledgement[AuthorizeRemoteStartRequest]:
        identification = request.identification
        if identification.value not in self._allowed:
            logger.info(
                "RemoteStart at %s rejected: %s is not whitelisted",
                request.evse_id,
                identification.value,
            )
            return Acknowledgement.communication_to_evse_failed(
                request,
                session_id=request.session_id,
                cpo_partner_session_id=request.cpo_partner_session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        if request.evse_id in self._sessions.values():
            return Acknowledgement.evse_already_in_use_wrong_token(
                request,
                session_id=request.session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        reservation = self._reservation_at(request.evse_id)
        if reservation is not None:
            reservation_id, holder = reservation
            if holder != identification.value:
                return Acknowledgement.evse_already_reserved(
                    request,
                    session_id=request.session_id,
                    emp_partner_session_id=request.emp_partner_session_id,
                )
            # The reservation turns into the charging session
            del self._reservations[reservation_id]

        session_id = request.session_id or (reservation[0] if reservation else SessionId.new())
        self._sessions[session_id] = request.evse_id
        logger.info("RemoteStart at %s accepted (session=%s)", request.evse_id, session_id)
        return Acknowledgement.success(
            request,
            session_id=session_id,
            cpo_partner_session_id=request.cpo_partner_session_id,
            emp_partner_session_id=request.emp_partner_session_id,
        )

    async def authorize_remote_stop(
        self, request: AuthorizeRemoteStopRequest
    ) -> Acknowledgement[AuthorizeRemoteStopRequest]:
        evse_id = self._sessions.get(request.session_id)
        if evse_id is None or evse_id != request.evse_id:
            logger.info("RemoteStop for unknown session %s", request.session_id)
            return Acknowledgement.session_is_invalid(
                request,
                session_id=request.session_id,
                emp_partner_session_id=request.emp_partner_session_id,
            )

        del self._sessions[request.session_id]
        logger.info("RemoteStop at %s accepted (session=%s)", evse_id, request.session_id)
        return Acknowledgement.success(
            request,
            session_id=request.session_id,
            cpo_partner_session_id=request.cpo_partner_session_id,
            emp_partner_session_id=request.emp_partner_session_id,
        )
