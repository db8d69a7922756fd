"""Concrete OICP 2.3 operations built on the request/response core.

These are transport-independent payloads; the JSON shapes are described by
the schemas in :mod:`.schemas`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import InvalidFieldError, ParseError
from .ids import (
    CPOPartnerSessionId,
    EMPPartnerSessionId,
    EVSEId,
    PartnerProductId,
    ProcessId,
    ProviderId,
    SessionId,
)
from .paging import APagedRequest, APagedResponse, PageFilter, PagedResponseBuilder, PagingInfo
from .request import ARequest, RequestMetadata
from .response import ResponseMetadata, TransportInfo
from .schemas import (
    AuthorizeRemoteReservationStartSchema,
    AuthorizeRemoteReservationStopSchema,
    AuthorizeRemoteStartSchema,
    AuthorizeRemoteStopSchema,
    ChargeDetailRecordSchema,
    GetChargeDetailRecordsSchema,
    IdentificationSchema,
    PagedResponseSchema,
    validate_wire,
)
from .status_code import StatusCode


class IdentificationType(str, Enum):
    REMOTE = "RemoteIdentification"
    RFID = "RFIDMifareFamilyIdentification"
    QR_CODE = "QRCodeIdentification"
    PLUG_AND_CHARGE = "PlugAndChargeIdentification"


@dataclass(frozen=True, slots=True)
class Identification:
    """How the user or contract was identified."""

    type: IdentificationType
    value: str
    pin: Optional[str] = None

    @classmethod
    def remote(cls, evco_id: str) -> "Identification":
        return cls(IdentificationType.REMOTE, evco_id)

    @classmethod
    def rfid(cls, uid: str) -> "Identification":
        return cls(IdentificationType.RFID, uid)

    @classmethod
    def qr_code(cls, evco_id: str, pin: Optional[str] = None) -> "Identification":
        return cls(IdentificationType.QR_CODE, evco_id, pin)

    @classmethod
    def plug_and_charge(cls, evco_id: str) -> "Identification":
        return cls(IdentificationType.PLUG_AND_CHARGE, evco_id)

    @classmethod
    def from_schema(cls, schema: IdentificationSchema) -> "Identification":
        if schema.remote is not None:
            return cls.remote(schema.remote.evco_id)
        if schema.rfid is not None:
            return cls.rfid(schema.rfid.uid)
        if schema.qr_code is not None:
            return cls.qr_code(schema.qr_code.evco_id, schema.qr_code.pin)
        if schema.plug_and_charge is not None:
            return cls.plug_and_charge(schema.plug_and_charge.evco_id)
        raise ParseError("The given identification is empty!", field="Identification")

    def to_json(self) -> Dict[str, Any]:
        if self.type is IdentificationType.RFID:
            inner: Dict[str, Any] = {"UID": self.value}
        else:
            inner = {"EvcoID": self.value}
        if self.pin is not None:
            inner["PIN"] = self.pin
        return {self.type.value: inner}

    def __str__(self) -> str:
        return self.value


def _optional(id_type, value: Optional[str], name: str):
    return id_type.parse(value, field=name) if value is not None else None


def _put(json: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        json[key] = str(value)


@dataclass(frozen=True, eq=False, slots=True)
class AuthorizeRemoteStartRequest(ARequest):
    """An EMP asks a CPO to start charging at an EVSE."""

    provider_id: ProviderId
    evse_id: EVSEId
    identification: Identification
    session_id: Optional[SessionId] = None
    cpo_partner_session_id: Optional[CPOPartnerSessionId] = None
    emp_partner_session_id: Optional[EMPPartnerSessionId] = None
    partner_product_id: Optional[PartnerProductId] = None
    meta: RequestMetadata = field(default_factory=RequestMetadata.create)

    def _key(self) -> Tuple[Any, ...]:
        return (
            self.provider_id,
            self.evse_id,
            self.identification,
            self.session_id,
            self.cpo_partner_session_id,
            self.emp_partner_session_id,
            self.partner_product_id,
        )

    # Two hops may stamp different process ids onto the same logical request.
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthorizeRemoteStartRequest):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @classmethod
    def try_parse(
        cls, data: Any, meta: Optional[RequestMetadata] = None
    ) -> Tuple[Optional["AuthorizeRemoteStartRequest"], Optional[ParseError]]:
        schema, error = validate_wire(
            AuthorizeRemoteStartSchema, data, "an AuthorizeRemoteStart request"
        )
        if error is not None:
            return None, error
        try:
            request = cls(
                provider_id=ProviderId.parse(schema.provider_id, field="ProviderID"),
                evse_id=EVSEId.parse(schema.evse_id, field="EvseID"),
                identification=Identification.from_schema(schema.identification),
                session_id=_optional(SessionId, schema.session_id, "SessionID"),
                cpo_partner_session_id=_optional(
                    CPOPartnerSessionId, schema.cpo_partner_session_id, "CPOPartnerSessionID"
                ),
                emp_partner_session_id=_optional(
                    EMPPartnerSessionId, schema.emp_partner_session_id, "EMPPartnerSessionID"
                ),
                partner_product_id=_optional(
                    PartnerProductId, schema.partner_product_id, "PartnerProductID"
                ),
                meta=meta or RequestMetadata.create(custom_data=schema.custom_data),
            )
        except ParseError as exc:
            return None, exc
        return request, None

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "ProviderID": str(self.provider_id),
            "EvseID": str(self.evse_id),
            "Identification": self.identification.to_json(),
        }
        _put(json, "SessionID", self.session_id)
        _put(json, "CPOPartnerSessionID", self.cpo_partner_session_id)
        _put(json, "EMPPartnerSessionID", self.emp_partner_session_id)
        _put(json, "PartnerProductID", self.partner_product_id)
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json


@dataclass(frozen=True, eq=False, slots=True)
class AuthorizeRemoteStopRequest(ARequest):
    """An EMP asks a CPO to stop a running charging session."""

    provider_id: ProviderId
    evse_id: EVSEId
    session_id: SessionId
    cpo_partner_session_id: Optional[CPOPartnerSessionId] = None
    emp_partner_session_id: Optional[EMPPartnerSessionId] = None
    meta: RequestMetadata = field(default_factory=RequestMetadata.create)

    def _key(self) -> Tuple[Any, ...]:
        return (
            self.provider_id,
            self.evse_id,
            self.session_id,
            self.cpo_partner_session_id,
            self.emp_partner_session_id,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthorizeRemoteStopRequest):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @classmethod
    def try_parse(
        cls, data: Any, meta: Optional[RequestMetadata] = None
    ) -> Tuple[Optional["AuthorizeRemoteStopRequest"], Optional[ParseError]]:
        schema, error = validate_wire(
            AuthorizeRemoteStopSchema, data, "an AuthorizeRemoteStop request"
        )
        if error is not None:
            return None, error
        try:
            request = cls(
                provider_id=ProviderId.parse(schema.provider_id, field="ProviderID"),
                evse_id=EVSEId.parse(schema.evse_id, field="EvseID"),
                session_id=SessionId.parse(schema.session_id, field="SessionID"),
                cpo_partner_session_id=_optional(
                    CPOPartnerSessionId, schema.cpo_partner_session_id, "CPOPartnerSessionID"
                ),
                emp_partner_session_id=_optional(
                    EMPPartnerSessionId, schema.emp_partner_session_id, "EMPPartnerSessionID"
                ),
                meta=meta or RequestMetadata.create(custom_data=schema.custom_data),
            )
        except ParseError as exc:
            return None, exc
        return request, None

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "ProviderID": str(self.provider_id),
            "EvseID": str(self.evse_id),
            "SessionID": str(self.session_id),
        }
        _put(json, "CPOPartnerSessionID", self.cpo_partner_session_id)
        _put(json, "EMPPartnerSessionID", self.emp_partner_session_id)
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json


@dataclass(frozen=True, eq=False, slots=True)
class AuthorizeRemoteReservationStartRequest(ARequest):
    """An EMP asks a CPO to reserve an EVSE, optionally for ``duration``.

    ``Duration`` travels as whole minutes.
    """

    provider_id: ProviderId
    evse_id: EVSEId
    identification: Identification
    session_id: Optional[SessionId] = None
    cpo_partner_session_id: Optional[CPOPartnerSessionId] = None
    emp_partner_session_id: Optional[EMPPartnerSessionId] = None
    partner_product_id: Optional[PartnerProductId] = None
    duration: Optional[timedelta] = None
    meta: RequestMetadata = field(default_factory=RequestMetadata.create)

    def _key(self) -> Tuple[Any, ...]:
        return (
            self.provider_id,
            self.evse_id,
            self.identification,
            self.session_id,
            self.cpo_partner_session_id,
            self.emp_partner_session_id,
            self.partner_product_id,
            self.duration,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthorizeRemoteReservationStartRequest):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @classmethod
    def try_parse(
        cls, data: Any, meta: Optional[RequestMetadata] = None
    ) -> Tuple[Optional["AuthorizeRemoteReservationStartRequest"], Optional[ParseError]]:
        schema, error = validate_wire(
            AuthorizeRemoteReservationStartSchema,
            data,
            "an AuthorizeRemoteReservationStart request",
        )
        if error is not None:
            return None, error
        try:
            request = cls(
                provider_id=ProviderId.parse(schema.provider_id, field="ProviderID"),
                evse_id=EVSEId.parse(schema.evse_id, field="EvseID"),
                identification=Identification.from_schema(schema.identification),
                session_id=_optional(SessionId, schema.session_id, "SessionID"),
                cpo_partner_session_id=_optional(
                    CPOPartnerSessionId, schema.cpo_partner_session_id, "CPOPartnerSessionID"
                ),
                emp_partner_session_id=_optional(
                    EMPPartnerSessionId, schema.emp_partner_session_id, "EMPPartnerSessionID"
                ),
                partner_product_id=_optional(
                    PartnerProductId, schema.partner_product_id, "PartnerProductID"
                ),
                duration=timedelta(minutes=schema.duration) if schema.duration is not None else None,
                meta=meta or RequestMetadata.create(custom_data=schema.custom_data),
            )
        except ParseError as exc:
            return None, exc
        return request, None

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "ProviderID": str(self.provider_id),
            "EvseID": str(self.evse_id),
            "Identification": self.identification.to_json(),
        }
        _put(json, "SessionID", self.session_id)
        _put(json, "CPOPartnerSessionID", self.cpo_partner_session_id)
        _put(json, "EMPPartnerSessionID", self.emp_partner_session_id)
        _put(json, "PartnerProductID", self.partner_product_id)
        if self.duration is not None:
            json["Duration"] = int(self.duration.total_seconds() // 60)
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json


@dataclass(frozen=True, eq=False, slots=True)
class AuthorizeRemoteReservationStopRequest(ARequest):
    """An EMP cancels a reservation it made earlier."""

    provider_id: ProviderId
    evse_id: EVSEId
    session_id: SessionId
    cpo_partner_session_id: Optional[CPOPartnerSessionId] = None
    emp_partner_session_id: Optional[EMPPartnerSessionId] = None
    meta: RequestMetadata = field(default_factory=RequestMetadata.create)

    def _key(self) -> Tuple[Any, ...]:
        return (
            self.provider_id,
            self.evse_id,
            self.session_id,
            self.cpo_partner_session_id,
            self.emp_partner_session_id,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthorizeRemoteReservationStopRequest):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @classmethod
    def try_parse(
        cls, data: Any, meta: Optional[RequestMetadata] = None
    ) -> Tuple[Optional["AuthorizeRemoteReservationStopRequest"], Optional[ParseError]]:
        schema, error = validate_wire(
            AuthorizeRemoteReservationStopSchema, data, "an AuthorizeRemoteReservationStop request"
        )
        if error is not None:
            return None, error
        try:
            request = cls(
                provider_id=ProviderId.parse(schema.provider_id, field="ProviderID"),
                evse_id=EVSEId.parse(schema.evse_id, field="EvseID"),
                session_id=SessionId.parse(schema.session_id, field="SessionID"),
                cpo_partner_session_id=_optional(
                    CPOPartnerSessionId, schema.cpo_partner_session_id, "CPOPartnerSessionID"
                ),
                emp_partner_session_id=_optional(
                    EMPPartnerSessionId, schema.emp_partner_session_id, "EMPPartnerSessionID"
                ),
                meta=meta or RequestMetadata.create(custom_data=schema.custom_data),
            )
        except ParseError as exc:
            return None, exc
        return request, None

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "ProviderID": str(self.provider_id),
            "EvseID": str(self.evse_id),
            "SessionID": str(self.session_id),
        }
        _put(json, "CPOPartnerSessionID", self.cpo_partner_session_id)
        _put(json, "EMPPartnerSessionID", self.emp_partner_session_id)
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json


@dataclass(frozen=True, slots=True)
class ChargeDetailRecord:
    session_id: SessionId
    evse_id: EVSEId
    identification: Identification
    charging_start: datetime
    charging_end: datetime
    consumed_energy: float
    cpo_partner_session_id: Optional[CPOPartnerSessionId] = None
    emp_partner_session_id: Optional[EMPPartnerSessionId] = None
    partner_product_id: Optional[PartnerProductId] = None

    def __post_init__(self) -> None:
        if (self.charging_start.tzinfo is None) != (self.charging_end.tzinfo is None):
            raise InvalidFieldError("ChargingStart and ChargingEnd must both carry a UTC offset!")
        if self.charging_end < self.charging_start:
            raise InvalidFieldError("A charging session cannot end before it started!")

    @classmethod
    def try_parse(cls, data: Any) -> Tuple[Optional["ChargeDetailRecord"], Optional[ParseError]]:
        schema, error = validate_wire(ChargeDetailRecordSchema, data, "a charge detail record")
        if error is not None:
            return None, error
        try:
            return (
                cls(
                    session_id=SessionId.parse(schema.session_id, field="SessionID"),
                    evse_id=EVSEId.parse(schema.evse_id, field="EvseID"),
                    identification=Identification.from_schema(schema.identification),
                    charging_start=schema.charging_start,
                    charging_end=schema.charging_end,
                    consumed_energy=schema.consumed_energy,
                    cpo_partner_session_id=_optional(
                        CPOPartnerSessionId, schema.cpo_partner_session_id, "CPOPartnerSessionID"
                    ),
                    emp_partner_session_id=_optional(
                        EMPPartnerSessionId, schema.emp_partner_session_id, "EMPPartnerSessionID"
                    ),
                    partner_product_id=_optional(
                        PartnerProductId, schema.partner_product_id, "PartnerProductID"
                    ),
                ),
                None,
            )
        except ParseError as exc:
            return None, exc
        except InvalidFieldError as exc:
            return None, ParseError(str(exc), field="ChargingEnd")

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "SessionID": str(self.session_id),
            "EvseID": str(self.evse_id),
            "Identification": self.identification.to_json(),
            "ChargingStart": self.charging_start.isoformat(),
            "ChargingEnd": self.charging_end.isoformat(),
            "ConsumedEnergy": self.consumed_energy,
        }
        _put(json, "CPOPartnerSessionID", self.cpo_partner_session_id)
        _put(json, "EMPPartnerSessionID", self.emp_partner_session_id)
        _put(json, "PartnerProductID", self.partner_product_id)
        return json


@dataclass(frozen=True, eq=False, slots=True)
class GetChargeDetailRecordsRequest(APagedRequest):
    """An EMP asks for the charge detail records of a time window."""

    provider_id: ProviderId
    from_: datetime
    to: datetime
    session_ids: Tuple[SessionId, ...] = ()
    paging: PageFilter = field(default_factory=PageFilter)
    meta: RequestMetadata = field(default_factory=RequestMetadata.create)

    def _key(self) -> Tuple[Any, ...]:
        return (self.provider_id, self.from_, self.to, self.session_ids, self.paging)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GetChargeDetailRecordsRequest):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @classmethod
    def try_parse(
        cls,
        data: Any,
        paging: Optional[PageFilter] = None,
        meta: Optional[RequestMetadata] = None,
    ) -> Tuple[Optional["GetChargeDetailRecordsRequest"], Optional[ParseError]]:
        schema, error = validate_wire(
            GetChargeDetailRecordsSchema, data, "a GetChargeDetailRecords request"
        )
        if error is not None:
            return None, error
        if schema.to < schema.from_:
            return None, ParseError("The time window ends before it starts!", field="To")
        try:
            request = cls(
                provider_id=ProviderId.parse(schema.provider_id, field="ProviderID"),
                from_=schema.from_,
                to=schema.to,
                session_ids=tuple(
                    SessionId.parse(value, field="SessionID") for value in schema.session_ids or ()
                ),
                paging=paging or PageFilter(),
                meta=meta or RequestMetadata.create(custom_data=schema.custom_data),
            )
        except ParseError as exc:
            return None, exc
        return request, None

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "ProviderID": str(self.provider_id),
            "From": self.from_.isoformat(),
            "To": self.to.isoformat(),
        }
        if self.session_ids:
            json["SessionID"] = [str(session_id) for session_id in self.session_ids]
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json


@dataclass(frozen=True, slots=True)
class GetChargeDetailRecordsResponse(APagedResponse):
    meta: ResponseMetadata
    charge_detail_records: Tuple[ChargeDetailRecord, ...]
    status_code: Optional[StatusCode] = None
    paging: PagingInfo = field(default_factory=PagingInfo)

    @classmethod
    def try_parse_json(
        cls,
        data: Any,
        *,
        process_id: ProcessId,
        runtime: timedelta,
        request: Optional[GetChargeDetailRecordsRequest] = None,
        http_response: Optional[TransportInfo] = None,
    ) -> Tuple[Optional["GetChargeDetailRecordsResponse"], Optional[ParseError]]:
        schema, error = validate_wire(
            PagedResponseSchema, data, "a GetChargeDetailRecords response"
        )
        if error is not None:
            return None, error

        status_code = None
        if schema.status_code is not None:
            status_code, error = StatusCode.try_parse_json(schema.status_code)
            if error is not None:
                return None, error

        records: List[ChargeDetailRecord] = []
        for position, entry in enumerate(schema.content):
            record, error = ChargeDetailRecord.try_parse(entry)
            if error is not None:
                error.field = f"content[{position}].{error.field or ''}".rstrip(".")
                return None, error
            records.append(record)

        try:
            paging = PagingInfo(
                first=schema.first,
                last=schema.last,
                number=schema.number,
                number_of_elements=schema.number_of_elements,
                size=schema.size,
                total_elements=schema.total_elements,
                total_pages=schema.total_pages,
            )
        except InvalidFieldError as exc:
            return None, ParseError(str(exc))

        meta = ResponseMetadata.for_request(
            request,
            process_id,
            runtime,
            http_response=http_response,
            custom_data=schema.custom_data,
        )
        return cls(meta, tuple(records), status_code, paging), None

    def to_json(self) -> Dict[str, Any]:
        json = {"content": [record.to_json() for record in self.charge_detail_records]}
        json.update(self.paged_json())
        return json

    def to_builder(self) -> "GetChargeDetailRecordsResponseBuilder":
        builder = GetChargeDetailRecordsResponseBuilder.from_response(self)
        builder.charge_detail_records = list(self.charge_detail_records)
        return builder


@dataclass
class GetChargeDetailRecordsResponseBuilder(PagedResponseBuilder):
    charge_detail_records: List[ChargeDetailRecord] = field(default_factory=list)

    def add(self, records: Sequence[ChargeDetailRecord]) -> "GetChargeDetailRecordsResponseBuilder":
        self.charge_detail_records.extend(records)
        return self

    def to_immutable(self) -> GetChargeDetailRecordsResponse:
        meta, status_code, paging = self.build_envelope()
        return GetChargeDetailRecordsResponse(
            meta, tuple(self.charge_detail_records), status_code, paging
        )
