"""Dispatch parsed OICP requests to registered handlers.

The dispatcher owns the transport-side duties of an exchange: it issues
exactly one process id per inbound request, measures the runtime, bounds
handler execution by the request timeout, and turns every failure into a
well-formed response.  A partner never gets an exception, only an
acknowledgement (or paged response) with a status code.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from oicp_bridge.oicp_local import (
    Acknowledgement,
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    CDRService,
    CPOService,
    DEFAULT_REQUEST_TIMEOUT,
    EventTrackingId,
    GetChargeDetailRecordsRequest,
    GetChargeDetailRecordsResponse,
    GetChargeDetailRecordsResponseBuilder,
    PageFilter,
    ProcessId,
    RequestMetadata,
    ResponseBuilder,
    StatusCodeBuilder,
    StatusCodes,
)
from oicp_bridge.oicp_local.request import utc_now

logger = logging.getLogger(__name__)

AUTHORIZE_REMOTE_RESERVATION_START = "AuthorizeRemoteReservationStart"
AUTHORIZE_REMOTE_RESERVATION_STOP = "AuthorizeRemoteReservationStop"
AUTHORIZE_REMOTE_START = "AuthorizeRemoteStart"
AUTHORIZE_REMOTE_STOP = "AuthorizeRemoteStop"
GET_CHARGE_DETAIL_RECORDS = "GetChargeDetailRecords"

PROCESS_ID_HEADER = "Process-ID"
EVENT_TRACKING_ID_HEADER = "X-Event-Tracking-ID"

Handler = Callable[[Any], Awaitable[Any]]


class _Exchange:
    """Process id and stopwatch of one inbound request."""

    def __init__(self, event_tracking_id: Optional[EventTrackingId]) -> None:
        self.process_id = ProcessId.new()
        self.event_tracking_id = event_tracking_id or EventTrackingId.new()
        self._started = time.monotonic()

    @property
    def runtime(self) -> timedelta:
        return timedelta(seconds=time.monotonic() - self._started)


class OICPDispatcher:
    """Registry of OICP operation handlers."""

    def __init__(self, request_timeout: timedelta = DEFAULT_REQUEST_TIMEOUT) -> None:
        self.request_timeout = request_timeout
        self._handlers: Dict[str, Handler] = {}

    def on(self, operation: str, handler: Optional[Handler] = None):
        """Register ``handler`` for ``operation``; usable as a decorator."""

        def register(func: Handler) -> Handler:
            self._handlers[operation] = func
            logger.debug("Registered handler for %s", operation)
            return func

        if handler is not None:
            return register(handler)
        return register

    def handler_for(self, operation: str) -> Optional[Handler]:
        return self._handlers.get(operation)

    def register_cpo_service(self, service: CPOService) -> None:
        self.on(AUTHORIZE_REMOTE_RESERVATION_START, service.authorize_remote_reservation_start)
        self.on(AUTHORIZE_REMOTE_RESERVATION_STOP, service.authorize_remote_reservation_stop)
        self.on(AUTHORIZE_REMOTE_START, service.authorize_remote_start)
        self.on(AUTHORIZE_REMOTE_STOP, service.authorize_remote_stop)

    def register_cdr_service(self, service: CDRService) -> None:
        self.on(GET_CHARGE_DETAIL_RECORDS, service.get_charge_detail_records)

    def _request_metadata(self, exchange: _Exchange, custom_data: Any = None) -> RequestMetadata:
        return RequestMetadata.create(
            event_tracking_id=exchange.event_tracking_id,
            request_timeout=self.request_timeout,
            process_id=exchange.process_id,
            custom_data=custom_data,
        )

    # Commands --------------------------------------------------------------

    async def authorize_remote_reservation_start(
        self, body: Any, event_tracking_id: Optional[EventTrackingId] = None
    ) -> Acknowledgement[AuthorizeRemoteReservationStartRequest]:
        return await self._dispatch_command(
            AUTHORIZE_REMOTE_RESERVATION_START,
            AuthorizeRemoteReservationStartRequest.try_parse,
            body,
            event_tracking_id,
        )

    async def authorize_remote_reservation_stop(
        self, body: Any, event_tracking_id: Optional[EventTrackingId] = None
    ) -> Acknowledgement[AuthorizeRemoteReservationStopRequest]:
        return await self._dispatch_command(
            AUTHORIZE_REMOTE_RESERVATION_STOP,
            AuthorizeRemoteReservationStopRequest.try_parse,
            body,
            event_tracking_id,
        )

    async def authorize_remote_start(
        self, body: Any, event_tracking_id: Optional[EventTrackingId] = None
    ) -> Acknowledgement[AuthorizeRemoteStartRequest]:
        return await self._dispatch_command(
            AUTHORIZE_REMOTE_START, AuthorizeRemoteStartRequest.try_parse, body, event_tracking_id
        )

    async def authorize_remote_stop(
        self, body: Any, event_tracking_id: Optional[EventTrackingId] = None
    ) -> Acknowledgement[AuthorizeRemoteStopRequest]:
        return await self._dispatch_command(
            AUTHORIZE_REMOTE_STOP, AuthorizeRemoteStopRequest.try_parse, body, event_tracking_id
        )

    async def _dispatch_command(
        self,
        operation: str,
        parse: Callable[..., Any],
        body: Any,
        event_tracking_id: Optional[EventTrackingId],
    ) -> Acknowledgement:
        exchange = _Exchange(event_tracking_id)
        custom_data = body.get("CustomData") if isinstance(body, dict) else None
        request, error = parse(body, meta=self._request_metadata(exchange, custom_data))

        if error is not None:
            logger.warning("← %s could not be parsed: %s", operation, error)
            return Acknowledgement.data_error(
                None,
                description=f"We could not handle the given {operation} request!",
                additional_info=str(error),
                process_id=exchange.process_id,
                runtime=exchange.runtime,
                event_tracking_id=exchange.event_tracking_id,
            )

        logger.info(
            "← %s (processId=%s, eventTrackingId=%s)",
            operation,
            exchange.process_id,
            exchange.event_tracking_id,
        )

        handler = self._handlers.get(operation)
        if handler is None:
            logger.warning("No handler registered for %s", operation)
            response = Acknowledgement.service_not_available(
                request, additional_info=f"No handler for {operation}!"
            )
        else:
            response = await self._invoke_command(operation, handler, request)

        response = response.with_meta(
            replace(response.meta, runtime=exchange.runtime, response_timestamp=utc_now())
        )
        logger.info(
            "→ %s: %s (processId=%s, runtime=%.3fs)",
            operation,
            response,
            exchange.process_id,
            response.runtime.total_seconds(),
        )
        return response

    async def _invoke_command(self, operation: str, handler: Handler, request: Any) -> Acknowledgement:
        try:
            response = await asyncio.wait_for(
                handler(request), timeout=request.request_timeout.total_seconds()
            )
        except asyncio.TimeoutError:
            logger.warning("%s handler timed out after %s", operation, request.request_timeout)
            return Acknowledgement.service_not_available(
                request, additional_info=f"{operation} timed out!"
            )
        except Exception as exc:
            logger.exception("%s handler crashed", operation)
            return Acknowledgement.system_error(
                request, description=str(exc) or None, additional_info=type(exc).__name__
            )

        if not isinstance(response, Acknowledgement):
            logger.error("%s handler returned %r instead of an acknowledgement", operation, response)
            return Acknowledgement.system_error(
                request, additional_info=f"Invalid {operation} handler result!"
            )
        return response

    # Listings --------------------------------------------------------------

    async def get_charge_detail_records(
        self,
        body: Any,
        paging: PageFilter,
        event_tracking_id: Optional[EventTrackingId] = None,
    ) -> GetChargeDetailRecordsResponse:
        exchange = _Exchange(event_tracking_id)
        custom_data = body.get("CustomData") if isinstance(body, dict) else None
        request, error = GetChargeDetailRecordsRequest.try_parse(
            body, paging=paging, meta=self._request_metadata(exchange, custom_data)
        )

        if error is not None:
            logger.warning("← %s could not be parsed: %s", GET_CHARGE_DETAIL_RECORDS, error)
            return self._failed_page(
                exchange,
                None,
                StatusCodeBuilder(
                    StatusCodes.DataError,
                    "We could not handle the given GetChargeDetailRecords request!",
                    str(error),
                ),
            )

        logger.info(
            "← %s page=%s size=%s (processId=%s)",
            GET_CHARGE_DETAIL_RECORDS,
            paging.page,
            paging.size,
            exchange.process_id,
        )

        handler = self._handlers.get(GET_CHARGE_DETAIL_RECORDS)
        if handler is None:
            return self._failed_page(
                exchange, request, StatusCodeBuilder(StatusCodes.ServiceNotAvailable, "Service not available!")
            )

        try:
            response = await asyncio.wait_for(
                handler(request), timeout=request.request_timeout.total_seconds()
            )
        except asyncio.TimeoutError:
            logger.warning("%s handler timed out", GET_CHARGE_DETAIL_RECORDS)
            return self._failed_page(
                exchange,
                request,
                StatusCodeBuilder(StatusCodes.ServiceNotAvailable, "Service not available!", "Timeout!"),
            )
        except Exception as exc:
            logger.exception("%s handler crashed", GET_CHARGE_DETAIL_RECORDS)
            return self._failed_page(
                exchange,
                request,
                StatusCodeBuilder(StatusCodes.SystemError, str(exc) or "System Error!"),
            )

        if not isinstance(response, GetChargeDetailRecordsResponse):
            logger.error(
                "%s handler returned %r instead of a page", GET_CHARGE_DETAIL_RECORDS, response
            )
            return self._failed_page(
                exchange,
                request,
                StatusCodeBuilder(
                    StatusCodes.SystemError,
                    "System Error!",
                    f"Invalid {GET_CHARGE_DETAIL_RECORDS} handler result!",
                ),
            )

        response = replace(
            response,
            meta=replace(response.meta, runtime=exchange.runtime, response_timestamp=utc_now()),
        )
        logger.info(
            "→ %s: %d records, page %s/%s (processId=%s)",
            GET_CHARGE_DETAIL_RECORDS,
            len(response.charge_detail_records),
            response.number,
            response.total_pages,
            exchange.process_id,
        )
        return response

    def _failed_page(
        self,
        exchange: _Exchange,
        request: Optional[GetChargeDetailRecordsRequest],
        status_code: StatusCodeBuilder,
    ) -> GetChargeDetailRecordsResponse:
        meta = ResponseBuilder(
            response_timestamp=utc_now(),
            event_tracking_id=exchange.event_tracking_id,
            process_id=exchange.process_id,
            runtime=exchange.runtime,
        )
        if request is not None:
            meta.answer(request)
        builder = GetChargeDetailRecordsResponseBuilder(meta=meta, status_code=status_code)
        return builder.to_immutable()
