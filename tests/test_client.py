"""Tests for the EMP client against mocked and in-process partners."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

import httpx

from oicp_bridge.api import create_app
from oicp_bridge.central_server import EVENT_TRACKING_ID_HEADER, PROCESS_ID_HEADER
from oicp_bridge.config import Settings
from oicp_bridge.oicp_client import EMPClient
from oicp_bridge.oicp_local import (
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    EVSEId,
    GetChargeDetailRecordsRequest,
    Identification,
    PageFilter,
    PagingInfo,
    ProviderId,
    SessionId,
    StatusCodes,
)

from .conftest import ALLOWED_EVCO_ID, EVSE_ID, OTHER_EVCO_ID, PROVIDER_ID, make_records

BASE_URL = "http://cpo.example"


def _start_request(evco_id: str = ALLOWED_EVCO_ID) -> AuthorizeRemoteStartRequest:
    return AuthorizeRemoteStartRequest(
        provider_id=ProviderId(PROVIDER_ID),
        evse_id=EVSEId(EVSE_ID),
        identification=Identification.remote(evco_id),
        session_id=SessionId("S1"),
    )


def _cdr_request(size=None) -> GetChargeDetailRecordsRequest:
    return GetChargeDetailRecordsRequest(
        provider_id=ProviderId(PROVIDER_ID),
        from_=datetime(2024, 1, 1, tzinfo=timezone.utc),
        to=datetime(2024, 2, 1, tzinfo=timezone.utc),
        paging=PageFilter(size=size),
    )


class TestAuthorizeRemoteStart:
    async def test_acknowledgement_is_parsed(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"Result": True, "StatusCode": {"Code": "000"}, "SessionID": "S1"},
                headers={PROCESS_ID_HEADER: "p-123"},
            )

        request = _start_request()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            ack = await EMPClient(http_client, BASE_URL, PROVIDER_ID).authorize_remote_start(request)

        assert ack.result is True
        assert ack.process_id == "p-123"
        assert ack.event_tracking_id == request.event_tracking_id
        assert ack.http_response.status_code == 200
        assert seen[0].url.path == f"/api/oicp/charging/v21/providers/{PROVIDER_ID}/authorize-remote/start"
        assert seen[0].headers[EVENT_TRACKING_ID_HEADER] == request.event_tracking_id

    async def test_missing_process_id_header(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Result": False, "StatusCode": {"Code": 501}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            ack = await EMPClient(http_client, BASE_URL, PROVIDER_ID).authorize_remote_start(
                _start_request()
            )

        assert ack.status_code.code == StatusCodes.CommunicationToEVSEFailed
        assert ack.process_id

    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            ack = await EMPClient(http_client, BASE_URL, PROVIDER_ID).authorize_remote_start(
                _start_request()
            )

        assert ack.result is False
        assert ack.status_code.code == StatusCodes.ServiceNotAvailable
        assert "connection refused" in ack.status_code.additional_info
        assert ack.http_response is None

    async def test_http_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            ack = await EMPClient(http_client, BASE_URL, PROVIDER_ID).authorize_remote_start(
                _start_request()
            )

        assert ack.status_code.code == StatusCodes.SystemError
        assert ack.status_code.description == "HTTP 502"

    async def test_unparsable_acknowledgement(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Result": True, "StatusCode": {"Code": "022"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            ack = await EMPClient(http_client, BASE_URL, PROVIDER_ID).authorize_remote_start(
                _start_request()
            )

        assert ack.status_code.code == StatusCodes.DataError


class TestAuthorizeRemoteReservation:
    async def test_request_is_posted_with_duration(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"Result": False, "StatusCode": {"Code": 601}},
                headers={PROCESS_ID_HEADER: "p-9"},
            )

        request = AuthorizeRemoteReservationStartRequest(
            provider_id=ProviderId(PROVIDER_ID),
            evse_id=EVSEId(EVSE_ID),
            identification=Identification.remote(ALLOWED_EVCO_ID),
            duration=timedelta(minutes=30),
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            ack = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).authorize_remote_reservation_start(request)

        assert ack.status_code.code == StatusCodes.EVSEAlreadyReserved
        assert seen[0].url.path.endswith("/authorize-remote-reservation/start")
        assert b'"Duration":30' in seen[0].content.replace(b" ", b"")


class TestChargeDetailRecords:
    async def test_all_pages(self) -> None:
        records = make_records(250)
        requested: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params["page"])
            size = int(request.url.params["size"])
            requested.append(f"{page}/{size}")
            start = page * size
            content = records[start:start + size]
            # Partner never sets "last"; the short page ends the walk
            paging = PagingInfo(number=page, number_of_elements=len(content), size=size)
            return httpx.Response(
                200,
                json={
                    "content": [record.to_json() for record in content],
                    "StatusCode": {"Code": "000"},
                    **paging.to_json(),
                },
                headers={PROCESS_ID_HEADER: f"p-{page}"},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            collected, last = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).get_all_charge_detail_records(_cdr_request(size=100))

        assert requested == ["0/100", "1/100", "2/100"]
        assert collected == records
        assert last.process_id == "p-2"

    async def test_partner_without_paging_fields(self) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.params["page"])
            if len(calls) > 5:
                raise RuntimeError(f"still paging after {len(calls)} requests")
            return httpx.Response(200, json={"content": [], "StatusCode": {"Code": 0}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            collected, last = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).get_all_charge_detail_records(_cdr_request())

        assert collected == []
        assert calls == ["0"]
        assert last.status_code.code == StatusCodes.Success

    async def test_short_page_without_paging_fields(self) -> None:
        records = make_records(15)
        calls: List[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params["page"])
            calls.append(page)
            content = records[page * 10:page * 10 + 10]
            return httpx.Response(
                200,
                json={"content": [record.to_json() for record in content], "StatusCode": {"Code": 0}},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            collected, _ = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).get_all_charge_detail_records(_cdr_request(size=10))

        assert collected == records
        assert calls == [0, 1]

    async def test_failed_page_stops_the_walk(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": [], "StatusCode": {"Code": "021"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            collected, last = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).get_all_charge_detail_records(_cdr_request(size=10))

        assert collected == []
        assert last.status_code.code == StatusCodes.SystemError

    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            response = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).get_charge_detail_records(_cdr_request())

        assert response.status_code.code == StatusCodes.ServiceNotAvailable
        assert response.charge_detail_records == ()


class TestFromSettings:
    async def test_partner_from_settings(self, monkeypatch) -> None:
        monkeypatch.setenv("OICP_PARTNER_BASE_URL", "http://hub.example/oicp/")
        monkeypatch.setenv("OICP_PARTNER_PROVIDER_ID", "DE-XYZ")
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"Result": True, "StatusCode": {"Code": 0}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = EMPClient.from_settings(http_client, Settings())
            await client.authorize_remote_start(_start_request())

        assert client.base_url == "http://hub.example/oicp"
        assert client.provider_id == "DE-XYZ"
        assert seen[0].url.path == "/oicp/api/oicp/charging/v21/providers/DE-XYZ/authorize-remote/start"


class TestAgainstServer:
    """The client talking to the FastAPI app in-process."""

    async def test_remote_start_and_stop(self, dispatcher) -> None:
        transport = httpx.ASGITransport(app=create_app(dispatcher))

        async with httpx.AsyncClient(transport=transport) as http_client:
            client = EMPClient(http_client, BASE_URL, PROVIDER_ID)
            started = await client.authorize_remote_start(_start_request())
            stopped = await client.authorize_remote_stop(
                AuthorizeRemoteStopRequest(ProviderId(PROVIDER_ID), EVSEId(EVSE_ID), SessionId("S1"))
            )
            rejected = await client.authorize_remote_start(_start_request("DE-GDF-C00000000X"))

        assert started.result is True
        assert started.session_id == "S1"
        assert stopped.result is True
        assert started.process_id != stopped.process_id
        assert rejected.status_code.code == StatusCodes.CommunicationToEVSEFailed

    async def test_reservation_round_trip(self, dispatcher) -> None:
        transport = httpx.ASGITransport(app=create_app(dispatcher))

        def reserve(evco_id: str) -> AuthorizeRemoteReservationStartRequest:
            return AuthorizeRemoteReservationStartRequest(
                provider_id=ProviderId(PROVIDER_ID),
                evse_id=EVSEId(EVSE_ID),
                identification=Identification.remote(evco_id),
                session_id=SessionId("R1"),
            )

        async with httpx.AsyncClient(transport=transport) as http_client:
            client = EMPClient(http_client, BASE_URL, PROVIDER_ID)
            reserved = await client.authorize_remote_reservation_start(reserve(ALLOWED_EVCO_ID))
            taken = await client.authorize_remote_reservation_start(reserve(OTHER_EVCO_ID))
            cancelled = await client.authorize_remote_reservation_stop(
                AuthorizeRemoteReservationStopRequest(
                    ProviderId(PROVIDER_ID), EVSEId(EVSE_ID), SessionId("R1")
                )
            )

        assert reserved.result is True
        assert taken.status_code.code == StatusCodes.EVSEAlreadyReserved
        assert cancelled.result is True

    async def test_all_charge_detail_records(self, dispatcher, cdr_store) -> None:
        transport = httpx.ASGITransport(app=create_app(dispatcher))

        async with httpx.AsyncClient(transport=transport) as http_client:
            collected, last = await EMPClient(
                http_client, BASE_URL, PROVIDER_ID
            ).get_all_charge_detail_records(_cdr_request(size=100))

        assert collected == cdr_store
        assert last.last is True
        assert last.number == 2
