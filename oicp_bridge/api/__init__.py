import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from oicp_bridge import __version__
from oicp_bridge.central_server import (
    EVENT_TRACKING_ID_HEADER,
    PROCESS_ID_HEADER,
    OICPDispatcher,
)
from oicp_bridge.config import get_settings
from oicp_bridge.oicp_local import AResponse, EventTrackingId, PageFilter
from oicp_bridge.services import WhitelistCPOService

from .store import StoreCDRService

logger = logging.getLogger(__name__)

CHARGING_PREFIX = "/api/oicp/charging/v21/providers/{provider_id}"
CDR_PREFIX = "/api/oicp/cdrmgmt/v22/providers/{provider_id}"


def default_dispatcher() -> OICPDispatcher:
    """Dispatcher wired to the whitelist CPO service and the CDR store."""
    settings = get_settings()
    dispatcher = OICPDispatcher(timedelta(seconds=settings.REQUEST_TIMEOUT_SECONDS))
    dispatcher.register_cpo_service(WhitelistCPOService(settings.ALLOWED_IDENTIFICATIONS))
    dispatcher.register_cdr_service(StoreCDRService(settings.DEFAULT_PAGE_SIZE))
    return dispatcher


async def _read_body(request: Request, provider_id: str) -> Any:
    """Decoded JSON body, or ``None`` when it is not valid JSON.

    A missing ``ProviderID`` is taken from the URL.
    """
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Request body of %s is not valid JSON", request.url.path)
        return None
    if isinstance(body, dict) and "ProviderID" not in body:
        body["ProviderID"] = provider_id
    return body


def _tracking_id(value: Optional[str]) -> Optional[EventTrackingId]:
    return EventTrackingId(value.strip()) if value and value.strip() else None


def _respond(response: AResponse, json: Any) -> JSONResponse:
    # OICP answers every request with HTTP 200; the outcome is in StatusCode
    return JSONResponse(
        content=json,
        headers={
            PROCESS_ID_HEADER: str(response.process_id),
            EVENT_TRACKING_ID_HEADER: str(response.event_tracking_id),
        },
    )


def create_app(dispatcher: Optional[OICPDispatcher] = None) -> FastAPI:
    dispatcher = dispatcher or default_dispatcher()
    app = FastAPI(title="OICP Bridge API", version=__version__)
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(">>> %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
            logger.info("<<< %s %s -> %s", request.method, request.url.path, response.status_code)
            return response
        except Exception:
            logger.exception("Handler crashed")
            raise

    @app.get("/api/v1/health")
    def health():
        return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}

    @app.post(CHARGING_PREFIX + "/authorize-remote-reservation/start")
    async def authorize_remote_reservation_start(
        provider_id: str,
        request: Request,
        event_tracking_id: Optional[str] = Header(None, alias=EVENT_TRACKING_ID_HEADER),
    ):
        body = await _read_body(request, provider_id)
        ack = await dispatcher.authorize_remote_reservation_start(
            body, _tracking_id(event_tracking_id)
        )
        return _respond(ack, ack.to_json())

    @app.post(CHARGING_PREFIX + "/authorize-remote-reservation/stop")
    async def authorize_remote_reservation_stop(
        provider_id: str,
        request: Request,
        event_tracking_id: Optional[str] = Header(None, alias=EVENT_TRACKING_ID_HEADER),
    ):
        body = await _read_body(request, provider_id)
        ack = await dispatcher.authorize_remote_reservation_stop(
            body, _tracking_id(event_tracking_id)
        )
        return _respond(ack, ack.to_json())

    @app.post(CHARGING_PREFIX + "/authorize-remote/start")
    async def authorize_remote_start(
        provider_id: str,
        request: Request,
        event_tracking_id: Optional[str] = Header(None, alias=EVENT_TRACKING_ID_HEADER),
    ):
        body = await _read_body(request, provider_id)
        ack = await dispatcher.authorize_remote_start(body, _tracking_id(event_tracking_id))
        return _respond(ack, ack.to_json())

    @app.post(CHARGING_PREFIX + "/authorize-remote/stop")
    async def authorize_remote_stop(
        provider_id: str,
        request: Request,
        event_tracking_id: Optional[str] = Header(None, alias=EVENT_TRACKING_ID_HEADER),
    ):
        body = await _read_body(request, provider_id)
        ack = await dispatcher.authorize_remote_stop(body, _tracking_id(event_tracking_id))
        return _respond(ack, ack.to_json())

    @app.post(CDR_PREFIX + "/get-charge-detail-records-request")
    async def get_charge_detail_records(
        provider_id: str,
        request: Request,
        page: Optional[int] = Query(None),
        size: Optional[int] = Query(None),
        sort: Optional[List[str]] = Query(None),
        event_tracking_id: Optional[str] = Header(None, alias=EVENT_TRACKING_ID_HEADER),
    ):
        body = await _read_body(request, provider_id)
        response = await dispatcher.get_charge_detail_records(
            body, PageFilter.from_query(page, size, sort), _tracking_id(event_tracking_id)
        )
        return _respond(response, response.to_json())

    return app


app = create_app()
