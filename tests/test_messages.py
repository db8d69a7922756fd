"""Tests for the concrete OICP operations."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from oicp_bridge.oicp_local import (
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    ChargeDetailRecord,
    GetChargeDetailRecordsRequest,
    GetChargeDetailRecordsResponse,
    Identification,
    IdentificationType,
    InvalidFieldError,
    PageFilter,
    PagingInfo,
    ProcessId,
    RequestMetadata,
    StatusCode,
    StatusCodes,
)

from .conftest import make_records


class TestAuthorizeRemoteStart:
    def test_parse(self, start_body) -> None:
        request, error = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert error is None
        assert request.evse_id == "DE*GEF*E1234567*1"
        assert request.session_id == "S1"
        assert request.identification == Identification.remote("DE-GDF-C12345678X")

    def test_json_round_trip(self, start_body) -> None:
        request, _ = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert request.to_json() == start_body

    def test_metadata_is_kept(self, start_body) -> None:
        meta = RequestMetadata.create(process_id=ProcessId("p-1"))

        request, _ = AuthorizeRemoteStartRequest.try_parse(start_body, meta=meta)

        assert request.process_id == "p-1"
        assert request.meta is meta

    def test_custom_data(self, start_body) -> None:
        start_body["CustomData"] = {"tariff": "night"}

        request, _ = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert request.custom_data == {"tariff": "night"}
        assert request.to_json()["CustomData"] == {"tariff": "night"}

    def test_missing_evse_id(self, start_body) -> None:
        del start_body["EvseID"]

        request, error = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert request is None
        assert error.field == "EvseID"

    def test_empty_evse_id(self, start_body) -> None:
        start_body["EvseID"] = " "

        request, error = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert request is None
        assert error.field == "EvseID"

    def test_empty_identification(self, start_body) -> None:
        start_body["Identification"] = {}

        request, error = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert request is None
        assert error.field == "Identification"

    def test_not_an_object(self) -> None:
        request, error = AuthorizeRemoteStartRequest.try_parse(["EvseID"])

        assert request is None
        assert "must be an object" in str(error)


class TestIdentification:
    def test_rfid_json(self) -> None:
        assert Identification.rfid("AABBCCDD").to_json() == {
            "RFIDMifareFamilyIdentification": {"UID": "AABBCCDD"}
        }

    def test_qr_code_with_pin(self) -> None:
        identification = Identification.qr_code("DE-GDF-C1", pin="1234")

        assert identification.type is IdentificationType.QR_CODE
        assert identification.to_json() == {
            "QRCodeIdentification": {"EvcoID": "DE-GDF-C1", "PIN": "1234"}
        }


class TestAuthorizeRemoteStop:
    def test_session_id_is_mandatory(self) -> None:
        request, error = AuthorizeRemoteStopRequest.try_parse(
            {"ProviderID": "DE-GDF", "EvseID": "DE*GEF*E1234567*1"}
        )

        assert request is None
        assert error.field == "SessionID"

    def test_parse(self) -> None:
        request, error = AuthorizeRemoteStopRequest.try_parse(
            {"ProviderID": "DE-GDF", "EvseID": "DE*GEF*E1234567*1", "SessionID": "S1"}
        )

        assert error is None
        assert request.session_id == "S1"


class TestChargeDetailRecords:
    def test_record_round_trip(self) -> None:
        record = make_records(1)[0]

        parsed, error = ChargeDetailRecord.try_parse(record.to_json())

        assert error is None
        assert parsed == record

    def test_end_before_start(self) -> None:
        json = make_records(1)[0].to_json()
        json["ChargingEnd"], json["ChargingStart"] = json["ChargingStart"], json["ChargingEnd"]

        record, error = ChargeDetailRecord.try_parse(json)

        assert record is None
        assert error.field == "ChargingEnd"

    def test_request_window(self) -> None:
        request, error = GetChargeDetailRecordsRequest.try_parse(
            {"ProviderID": "DE-GDF", "From": "2024-02-01T00:00:00Z", "To": "2024-01-01T00:00:00Z"}
        )

        assert request is None
        assert error.field == "To"

    def test_request_paging(self) -> None:
        request, _ = GetChargeDetailRecordsRequest.try_parse(
            {"ProviderID": "DE-GDF", "From": "2024-01-01T00:00:00Z", "To": "2024-02-01T00:00:00Z"},
            paging=PageFilter(page=1, size=100),
        )

        assert request.page == 1
        assert request.size == 100
        assert request.with_paging(PageFilter(page=2)).page == 2

    def test_response_round_trip(self) -> None:
        records = make_records(3)
        json = {
            "content": [record.to_json() for record in records],
            "StatusCode": {"Code": "000"},
            **PagingInfo.for_slice(0, 3, 3).to_json(),
        }

        response, error = GetChargeDetailRecordsResponse.try_parse_json(
            json, process_id=ProcessId.new(), runtime=timedelta(0)
        )

        assert error is None
        assert response.charge_detail_records == tuple(records)
        assert response.status_code == StatusCode(StatusCodes.Success)
        assert response.last is True
        assert response.to_builder().to_immutable() == response

    def test_response_with_invalid_record(self) -> None:
        json = {"content": [{"SessionID": "S1"}], "last": True}

        response, error = GetChargeDetailRecordsResponse.try_parse_json(
            json, process_id=ProcessId.new(), runtime=timedelta(0)
        )

        assert response is None
        assert error.field.startswith("content[0]")

    def test_response_with_inconsistent_paging(self) -> None:
        json = {"content": [], "number": 4, "totalPages": 2}

        response, error = GetChargeDetailRecordsResponse.try_parse_json(
            json, process_id=ProcessId.new(), runtime=timedelta(0)
        )

        assert response is None
        assert error is not None


class TestTimestampsWithoutOffset:
    def test_request_window_is_read_as_utc(self) -> None:
        request, error = GetChargeDetailRecordsRequest.try_parse(
            {"ProviderID": "DE-GDF", "From": "2024-01-01T00:00:00", "To": "2024-02-01T00:00:00Z"}
        )

        assert error is None
        assert request.from_ == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_inverted_window_without_offset(self) -> None:
        request, error = GetChargeDetailRecordsRequest.try_parse(
            {"ProviderID": "DE-GDF", "From": "2024-03-01T00:00:00", "To": "2024-02-01T00:00:00Z"}
        )

        assert request is None
        assert error.field == "To"

    def test_record_is_read_as_utc(self) -> None:
        json = make_records(1)[0].to_json()
        json["ChargingStart"] = "2024-01-01T00:00:00"

        record, error = ChargeDetailRecord.try_parse(json)

        assert error is None
        assert record.charging_start.tzinfo == timezone.utc

    def test_mixed_offsets_are_rejected_on_construction(self) -> None:
        record = make_records(1)[0]

        with pytest.raises(InvalidFieldError):
            replace(record, charging_start=record.charging_start.replace(tzinfo=None))


class TestAuthorizeRemoteReservation:
    def test_duration_in_minutes(self, start_body) -> None:
        start_body["Duration"] = 20

        request, error = AuthorizeRemoteReservationStartRequest.try_parse(start_body)

        assert error is None
        assert request.duration == timedelta(minutes=20)
        assert request.to_json() == start_body

    def test_duration_is_optional(self, start_body) -> None:
        request, _ = AuthorizeRemoteReservationStartRequest.try_parse(start_body)

        assert request.duration is None
        assert "Duration" not in request.to_json()

    def test_not_equal_to_remote_start(self, start_body) -> None:
        reservation, _ = AuthorizeRemoteReservationStartRequest.try_parse(start_body)
        start, _ = AuthorizeRemoteStartRequest.try_parse(start_body)

        assert reservation != start

    def test_stop_needs_session_id(self) -> None:
        request, error = AuthorizeRemoteReservationStopRequest.try_parse(
            {"ProviderID": "DE-GDF", "EvseID": "DE*GEF*E1234567*1"}
        )

        assert request is None
        assert error.field == "SessionID"
