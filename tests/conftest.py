"""Shared fixtures for the OICP bridge tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, List

import pytest

from oicp_bridge.api import store
from oicp_bridge.central_server import OICPDispatcher
from oicp_bridge.oicp_local import (
    AuthorizeRemoteStartRequest,
    ChargeDetailRecord,
    EVSEId,
    Identification,
    ProcessId,
    ProviderId,
    SessionId,
)
from oicp_bridge.services import WhitelistCPOService

PROVIDER_ID = "DE-GDF"
EVSE_ID = "DE*GEF*E1234567*1"
ALLOWED_EVCO_ID = "DE-GDF-C12345678X"
OTHER_EVCO_ID = "DE-GDF-C87654321X"
WINDOW_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def start_body() -> Dict[str, Any]:
    return {
        "ProviderID": PROVIDER_ID,
        "EvseID": EVSE_ID,
        "SessionID": "S1",
        "Identification": {"RemoteIdentification": {"EvcoID": ALLOWED_EVCO_ID}},
    }


@pytest.fixture
def start_request() -> AuthorizeRemoteStartRequest:
    """A remote start request as the dispatcher would hand it to a service."""
    request = AuthorizeRemoteStartRequest(
        provider_id=ProviderId(PROVIDER_ID),
        evse_id=EVSEId(EVSE_ID),
        identification=Identification.remote(ALLOWED_EVCO_ID),
        session_id=SessionId("S1"),
    )
    return request.with_process_id(ProcessId.new())


@pytest.fixture
def cpo_service() -> WhitelistCPOService:
    return WhitelistCPOService([ALLOWED_EVCO_ID, OTHER_EVCO_ID])


@pytest.fixture
def dispatcher(cpo_service: WhitelistCPOService) -> OICPDispatcher:
    dispatcher = OICPDispatcher()
    dispatcher.register_cpo_service(cpo_service)
    dispatcher.register_cdr_service(store.StoreCDRService(default_page_size=20))
    return dispatcher


def make_records(count: int) -> List[ChargeDetailRecord]:
    return [
        ChargeDetailRecord(
            session_id=SessionId(f"session-{index:04d}"),
            evse_id=EVSEId(EVSE_ID),
            identification=Identification.remote(ALLOWED_EVCO_ID),
            charging_start=WINDOW_START + timedelta(minutes=index),
            charging_end=WINDOW_START + timedelta(minutes=index + 30),
            consumed_energy=float(index % 40),
        )
        for index in range(count)
    ]


@pytest.fixture
def cdr_store() -> Generator[List[ChargeDetailRecord], None, None]:
    """Fill the in-memory store with 250 records and clean up afterwards."""
    store.clear_charge_detail_records()
    records = make_records(250)
    for record in records:
        store.add_charge_detail_record(ProviderId(PROVIDER_ID), record)
    yield records
    store.clear_charge_detail_records()
