"""EMP-side client for the OICP CPO server API.

The client talks JSON over HTTP to a roaming partner (or to the Hubject
platform) and turns every answer into the same response objects the server
side produces.  Transport failures never raise: they come back as an
acknowledgement or paged response with ``ServiceNotAvailable``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from oicp_bridge.central_server import EVENT_TRACKING_ID_HEADER, PROCESS_ID_HEADER
from oicp_bridge.config import Settings, get_settings
from oicp_bridge.oicp_local import (
    Acknowledgement,
    ARequest,
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    ChargeDetailRecord,
    GetChargeDetailRecordsRequest,
    GetChargeDetailRecordsResponse,
    GetChargeDetailRecordsResponseBuilder,
    ProcessId,
    ProviderId,
    ResponseBuilder,
    StatusCodeBuilder,
    StatusCodes,
    TransportInfo,
    is_last_page,
)
from oicp_bridge.oicp_local.request import utc_now

logger = logging.getLogger(__name__)


class _Call:
    """Outcome of one HTTP round trip."""

    def __init__(self) -> None:
        self._started = time.monotonic()
        self.response: Optional[httpx.Response] = None
        self.error: Optional[Exception] = None
        self.process_id: Optional[ProcessId] = None
        self.runtime = timedelta(0)

    def finish(self) -> None:
        self.runtime = timedelta(seconds=time.monotonic() - self._started)
        header = self.response.headers.get(PROCESS_ID_HEADER) if self.response is not None else None
        if header and header.strip():
            self.process_id = ProcessId(header.strip())
        else:
            if self.response is not None:
                logger.warning("Response without %s header, using a local one", PROCESS_ID_HEADER)
            self.process_id = ProcessId.new()

    @property
    def transport_info(self) -> Optional[TransportInfo]:
        if self.response is None:
            return None
        return TransportInfo(self.response.status_code, dict(self.response.headers))

    def json(self) -> Any:
        try:
            return self.response.json()
        except ValueError:
            return None


class EMPClient:
    """Send OICP commands and queries to a CPO server API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        provider_id: str,
    ) -> None:
        self._client = http_client
        self.base_url = base_url.rstrip("/")
        self.provider_id = ProviderId.parse(provider_id, field="provider_id")

    @classmethod
    def from_settings(
        cls, http_client: httpx.AsyncClient, settings: Optional[Settings] = None
    ) -> "EMPClient":
        """Client for the partner configured by ``OICP_PARTNER_*``."""
        settings = settings or get_settings()
        return cls(http_client, settings.PARTNER_BASE_URL, settings.PARTNER_PROVIDER_ID)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path.format(provider_id=self.provider_id)}"

    async def _post(
        self,
        operation: str,
        path: str,
        request: ARequest,
        payload: Dict[str, Any],
        params: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> _Call:
        result = _Call()
        logger.info("→ %s (eventTrackingId=%s)", operation, request.event_tracking_id)
        try:
            result.response = await self._client.post(
                self._url(path),
                json=payload,
                params=list(params or ()),
                headers={EVENT_TRACKING_ID_HEADER: str(request.event_tracking_id)},
                timeout=request.request_timeout.total_seconds(),
            )
        except httpx.HTTPError as exc:
            logger.warning("%s failed: %s", operation, exc)
            result.error = exc
        result.finish()
        if result.response is not None:
            logger.info(
                "← %s: HTTP %s (processId=%s, runtime=%.3fs)",
                operation,
                result.response.status_code,
                result.process_id,
                result.runtime.total_seconds(),
            )
        return result

    # Commands --------------------------------------------------------------

    async def authorize_remote_reservation_start(
        self, request: AuthorizeRemoteReservationStartRequest
    ) -> Acknowledgement[AuthorizeRemoteReservationStartRequest]:
        call = await self._post(
            "AuthorizeRemoteReservationStart",
            "/api/oicp/charging/v21/providers/{provider_id}/authorize-remote-reservation/start",
            request,
            request.to_json(),
        )
        return self._acknowledgement(call, request)

    async def authorize_remote_reservation_stop(
        self, request: AuthorizeRemoteReservationStopRequest
    ) -> Acknowledgement[AuthorizeRemoteReservationStopRequest]:
        call = await self._post(
            "AuthorizeRemoteReservationStop",
            "/api/oicp/charging/v21/providers/{provider_id}/authorize-remote-reservation/stop",
            request,
            request.to_json(),
        )
        return self._acknowledgement(call, request)

    async def authorize_remote_start(
        self, request: AuthorizeRemoteStartRequest
    ) -> Acknowledgement[AuthorizeRemoteStartRequest]:
        call = await self._post(
            "AuthorizeRemoteStart",
            "/api/oicp/charging/v21/providers/{provider_id}/authorize-remote/start",
            request,
            request.to_json(),
        )
        return self._acknowledgement(call, request)

    async def authorize_remote_stop(
        self, request: AuthorizeRemoteStopRequest
    ) -> Acknowledgement[AuthorizeRemoteStopRequest]:
        call = await self._post(
            "AuthorizeRemoteStop",
            "/api/oicp/charging/v21/providers/{provider_id}/authorize-remote/stop",
            request,
            request.to_json(),
        )
        return self._acknowledgement(call, request)

    def _acknowledgement(self, call: _Call, request: ARequest) -> Acknowledgement:
        kwargs = dict(process_id=call.process_id, runtime=call.runtime)
        if call.response is None:
            return Acknowledgement.service_not_available(
                request, additional_info=str(call.error), **kwargs
            )

        acknowledgement, error = Acknowledgement.try_parse_json(
            call.json(), request=request, http_response=call.transport_info, **kwargs
        )
        if acknowledgement is not None:
            return acknowledgement

        if call.response.status_code != 200:
            return Acknowledgement.system_error(
                request,
                description=f"HTTP {call.response.status_code}",
                additional_info=call.response.text[:256],
                **kwargs,
            )
        logger.warning("Could not parse the acknowledgement: %s", error)
        return Acknowledgement.data_error(
            request,
            description="Could not parse the acknowledgement!",
            additional_info=str(error),
            **kwargs,
        )

    # Listings --------------------------------------------------------------

    async def get_charge_detail_records(
        self, request: GetChargeDetailRecordsRequest
    ) -> GetChargeDetailRecordsResponse:
        call = await self._post(
            "GetChargeDetailRecords",
            "/api/oicp/cdrmgmt/v22/providers/{provider_id}/get-charge-detail-records-request",
            request,
            request.to_json(),
            params=request.paging.to_query_params(),
        )

        if call.response is None:
            return self._failed_page(
                call,
                request,
                StatusCodeBuilder(StatusCodes.ServiceNotAvailable, "Service not available!", str(call.error)),
            )

        response, error = GetChargeDetailRecordsResponse.try_parse_json(
            call.json(),
            process_id=call.process_id,
            runtime=call.runtime,
            request=request,
            http_response=call.transport_info,
        )
        if response is not None:
            return response

        if call.response.status_code != 200:
            status_code = StatusCodeBuilder(
                StatusCodes.SystemError,
                f"HTTP {call.response.status_code}",
                call.response.text[:256],
            )
        else:
            logger.warning("Could not parse the charge detail records page: %s", error)
            status_code = StatusCodeBuilder(
                StatusCodes.DataError, "Could not parse the charge detail records!", str(error)
            )
        return self._failed_page(call, request, status_code)

    def _failed_page(
        self,
        call: _Call,
        request: GetChargeDetailRecordsRequest,
        status_code: StatusCodeBuilder,
    ) -> GetChargeDetailRecordsResponse:
        meta = ResponseBuilder(
            response_timestamp=utc_now(),
            process_id=call.process_id,
            runtime=call.runtime,
            http_response=call.transport_info,
        ).answer(request)
        return GetChargeDetailRecordsResponseBuilder(meta=meta, status_code=status_code).to_immutable()

    async def get_all_charge_detail_records(
        self,
        request: GetChargeDetailRecordsRequest,
        max_pages: Optional[int] = None,
    ) -> Tuple[List[ChargeDetailRecord], GetChargeDetailRecordsResponse]:
        """Fetch page after page until the partner signals the last one.

        Returns all records collected and the last response received, whose
        status code tells whether the listing ended early.
        """
        records: List[ChargeDetailRecord] = []
        paging = request.paging if request.paging.page is not None else replace(request.paging, page=0)
        pages = 0
        while True:
            response = await self.get_charge_detail_records(request.with_paging(paging))
            pages += 1
            if response.status_code is not None and not response.status_code.has_result:
                logger.warning("CDR listing stopped at page %s: %s", paging.page, response.status_code)
                return records, response
            records.extend(response.charge_detail_records)
            if is_last_page(
                response.paging,
                paging.size or response.size,
                len(response.charge_detail_records),
            ):
                return records, response
            if max_pages is not None and pages >= max_pages:
                logger.warning("CDR listing stopped after %d pages", pages)
                return records, response
            paging = paging.next_page()
