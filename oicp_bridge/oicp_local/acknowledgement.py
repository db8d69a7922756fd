"""The OICP acknowledgement envelope.

Command operations (remote start/stop, reservations, CDR delivery, ...)
answer with an acknowledgement::

    {
      "Result": false,
      "StatusCode": {"Code": 501, "Description": "Communication to EVSE failed!"},
      "SessionID": "...",
      "CPOPartnerSessionID": "...",
      "EMPPartnerSessionID": "..."
    }

``Result`` duplicates ``StatusCode.Code == 000`` but is kept on the wire for
schema compatibility.  Unlike older implementations the two are checked
against each other whenever an acknowledgement is constructed or parsed.

Handlers should build acknowledgements through the named constructors
(:meth:`Acknowledgement.success`, :meth:`Acknowledgement.data_error`, ...)
instead of assembling status codes by hand.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar

from .errors import ConsistencyError, ParseError
from .ids import CPOPartnerSessionId, EMPPartnerSessionId, EventTrackingId, ProcessId, SessionId
from .request import ARequest, utc_now
from .response import AResponse, ResponseBuilder, ResponseMetadata, TransportInfo
from .schemas import AcknowledgementSchema, validate_wire
from .status_code import (
    COMMON_TYPES_NS,
    StatusCode,
    StatusCodeBuilder,
    StatusCodes,
    qname,
)

TRequest = TypeVar("TRequest", bound=ARequest)


def response_metadata(
    request: Optional[ARequest],
    process_id: Optional[ProcessId] = None,
    runtime: Optional[timedelta] = None,
    custom_data: Optional[Mapping[str, Any]] = None,
    event_tracking_id: Optional[EventTrackingId] = None,
) -> ResponseMetadata:
    """Derive response metadata from the request being answered.

    The process id defaults to the one the receiving side stamped onto the
    request, the runtime to the time elapsed since the request timestamp.
    Without a request both must be given explicitly.
    """
    now = utc_now()
    if request is not None:
        process_id = process_id or request.process_id
        if runtime is None:
            runtime = max(now - request.timestamp, timedelta(0))
    return ResponseMetadata.for_request(
        request,
        process_id,
        runtime,
        event_tracking_id=event_tracking_id,
        response_timestamp=now,
        custom_data=custom_data,
    )


@dataclass(frozen=True, slots=True)
class Acknowledgement(AResponse, Generic[TRequest]):
    meta: ResponseMetadata
    result: bool
    status_code: StatusCode
    session_id: Optional[SessionId] = None
    cpo_partner_session_id: Optional[CPOPartnerSessionId] = None
    emp_partner_session_id: Optional[EMPPartnerSessionId] = None

    def __post_init__(self) -> None:
        if self.result != self.status_code.has_result:
            raise ConsistencyError(
                f"Result={self.result} contradicts status code {self.status_code.code.wire_code}!"
            )

    def with_meta(self, meta: ResponseMetadata) -> "Acknowledgement[TRequest]":
        return replace(self, meta=meta)

    # Named constructors ----------------------------------------------------

    @classmethod
    def _create(
        cls,
        code: StatusCodes,
        default_description: str,
        request: Optional[TRequest],
        session_id: Optional[SessionId] = None,
        cpo_partner_session_id: Optional[CPOPartnerSessionId] = None,
        emp_partner_session_id: Optional[EMPPartnerSessionId] = None,
        description: Optional[str] = None,
        additional_info: Optional[str] = None,
        process_id: Optional[ProcessId] = None,
        runtime: Optional[timedelta] = None,
        custom_data: Optional[Mapping[str, Any]] = None,
        event_tracking_id: Optional[EventTrackingId] = None,
    ) -> "Acknowledgement[TRequest]":
        return cls(
            meta=response_metadata(request, process_id, runtime, custom_data, event_tracking_id),
            result=code == StatusCodes.Success,
            status_code=StatusCode(code, description or default_description, additional_info),
            session_id=session_id,
            cpo_partner_session_id=cpo_partner_session_id,
            emp_partner_session_id=emp_partner_session_id,
        )

    @classmethod
    def success(cls, request: Optional[TRequest], **kwargs: Any) -> "Acknowledgement[TRequest]":
        return cls._create(StatusCodes.Success, "Success", request, **kwargs)

    @classmethod
    def data_error(cls, request: Optional[TRequest], **kwargs: Any) -> "Acknowledgement[TRequest]":
        return cls._create(StatusCodes.DataError, "Data Error!", request, **kwargs)

    @classmethod
    def system_error(cls, request: Optional[TRequest], **kwargs: Any) -> "Acknowledgement[TRequest]":
        return cls._create(StatusCodes.SystemError, "System Error!", request, **kwargs)

    @classmethod
    def service_not_available(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(
            StatusCodes.ServiceNotAvailable, "Service not available!", request, **kwargs
        )

    @classmethod
    def session_is_invalid(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(StatusCodes.SessionIsInvalid, "Session is invalid!", request, **kwargs)

    @classmethod
    def communication_to_evse_failed(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(
            StatusCodes.CommunicationToEVSEFailed, "Communication to EVSE failed!", request, **kwargs
        )

    @classmethod
    def evse_already_reserved(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(
            StatusCodes.EVSEAlreadyReserved, "EVSE already reserved!", request, **kwargs
        )

    @classmethod
    def evse_already_in_use_wrong_token(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(
            StatusCodes.EVSEAlreadyInUse_WrongToken, "EVSE is already in use!", request, **kwargs
        )

    @classmethod
    def unknown_evse_id(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(
            StatusCodes.UnknownEVSEID, "Unknown EVSE identification!", request, **kwargs
        )

    @classmethod
    def evse_out_of_service(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(StatusCodes.EVSEOutOfService, "EVSE out of service!", request, **kwargs)

    @classmethod
    def no_valid_contract(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(StatusCodes.NoValidContract, "No valid contract!", request, **kwargs)

    @classmethod
    def no_ev_connected_to_evse(
        cls, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        return cls._create(
            StatusCodes.NoEVConnectedToEVSE,
            "No electric vehicle connected to EVSE!",
            request,
            **kwargs,
        )

    @classmethod
    def failure(
        cls, code: StatusCodes, request: Optional[TRequest], **kwargs: Any
    ) -> "Acknowledgement[TRequest]":
        """Negative acknowledgement for a code without a named constructor."""
        code = StatusCodes(code)
        if code == StatusCodes.Success:
            raise ConsistencyError("A failure acknowledgement cannot carry the success code!")
        return cls._create(code, code.name, request, **kwargs)

    # JSON ------------------------------------------------------------------

    @classmethod
    def try_parse_json(
        cls,
        data: Any,
        *,
        process_id: ProcessId,
        runtime: timedelta,
        request: Optional[TRequest] = None,
        event_tracking_id: Optional[EventTrackingId] = None,
        response_timestamp: Optional[datetime] = None,
        http_response: Optional[TransportInfo] = None,
    ) -> Tuple[Optional["Acknowledgement[TRequest]"], Optional[ParseError]]:
        schema, error = validate_wire(AcknowledgementSchema, data, "an acknowledgement")
        if error is not None:
            return None, error

        status_code, error = StatusCode.try_parse_json(schema.status_code)
        if error is not None:
            error.field = f"StatusCode.{error.field}" if error.field else "StatusCode"
            return None, error

        meta = ResponseMetadata.for_request(
            request,
            process_id,
            runtime,
            event_tracking_id=event_tracking_id,
            response_timestamp=response_timestamp,
            http_response=http_response,
            custom_data=schema.custom_data,
        )
        return cls._build_parsed(
            meta,
            schema.result,
            status_code,
            schema.session_id,
            schema.cpo_partner_session_id,
            schema.emp_partner_session_id,
        )

    @classmethod
    def parse_json(cls, data: Any, **kwargs: Any) -> Optional["Acknowledgement[TRequest]"]:
        acknowledgement, _ = cls.try_parse_json(data, **kwargs)
        return acknowledgement

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {
            "Result": self.result,
            "StatusCode": self.status_code.to_json(),
        }
        if self.session_id is not None:
            json["SessionID"] = str(self.session_id)
        if self.cpo_partner_session_id is not None:
            json["CPOPartnerSessionID"] = str(self.cpo_partner_session_id)
        if self.emp_partner_session_id is not None:
            json["EMPPartnerSessionID"] = str(self.emp_partner_session_id)
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json

    # XML -------------------------------------------------------------------

    @classmethod
    def try_parse_xml(
        cls,
        element: ET.Element,
        *,
        process_id: ProcessId,
        runtime: timedelta,
        request: Optional[TRequest] = None,
        event_tracking_id: Optional[EventTrackingId] = None,
        response_timestamp: Optional[datetime] = None,
        http_response: Optional[TransportInfo] = None,
        namespace: str = COMMON_TYPES_NS,
    ) -> Tuple[Optional["Acknowledgement[TRequest]"], Optional[ParseError]]:
        expected = qname("eRoamingAcknowledgement", namespace)
        if element is None or element.tag != expected:
            found = None if element is None else element.tag
            return None, ParseError(f"Expected element '{expected}', found '{found}'!")

        result_text = (element.findtext(qname("Result", namespace)) or "").strip()
        if result_text not in ("true", "false"):
            return None, ParseError(
                f"The result '{result_text}' is not a boolean literal!", field="Result"
            )

        status_code, error = StatusCode.try_parse_xml(
            element.find(qname("StatusCode", namespace)), namespace=namespace
        )
        if error is not None:
            error.field = f"StatusCode.{error.field}" if error.field else "StatusCode"
            return None, error

        meta = ResponseMetadata.for_request(
            request,
            process_id,
            runtime,
            event_tracking_id=event_tracking_id,
            response_timestamp=response_timestamp,
            http_response=http_response,
        )
        return cls._build_parsed(
            meta,
            result_text == "true",
            status_code,
            element.findtext(qname("SessionID", namespace)),
            element.findtext(qname("CPOPartnerSessionID", namespace))
            or element.findtext(qname("PartnerSessionID", namespace)),
            element.findtext(qname("EMPPartnerSessionID", namespace)),
        )

    @classmethod
    def parse_xml(cls, element: ET.Element, **kwargs: Any) -> Optional["Acknowledgement[TRequest]"]:
        acknowledgement, _ = cls.try_parse_xml(element, **kwargs)
        return acknowledgement

    def to_xml(self, namespace: str = COMMON_TYPES_NS) -> ET.Element:
        element = ET.Element(qname("eRoamingAcknowledgement", namespace))
        ET.SubElement(element, qname("Result", namespace)).text = "true" if self.result else "false"
        element.append(self.status_code.to_xml(namespace=namespace))
        for tag, value in (
            ("SessionID", self.session_id),
            ("CPOPartnerSessionID", self.cpo_partner_session_id),
            ("EMPPartnerSessionID", self.emp_partner_session_id),
        ):
            if value is not None:
                ET.SubElement(element, qname(tag, namespace)).text = str(value)
        return element

    @classmethod
    def _build_parsed(
        cls,
        meta: ResponseMetadata,
        result: bool,
        status_code: StatusCode,
        session_id: Optional[str],
        cpo_partner_session_id: Optional[str],
        emp_partner_session_id: Optional[str],
    ) -> Tuple[Optional["Acknowledgement[TRequest]"], Optional[ParseError]]:
        try:
            return (
                cls(
                    meta=meta,
                    result=result,
                    status_code=status_code,
                    session_id=SessionId.parse(session_id, field="SessionID")
                    if session_id
                    else None,
                    cpo_partner_session_id=CPOPartnerSessionId.parse(
                        cpo_partner_session_id, field="CPOPartnerSessionID"
                    )
                    if cpo_partner_session_id
                    else None,
                    emp_partner_session_id=EMPPartnerSessionId.parse(
                        emp_partner_session_id, field="EMPPartnerSessionID"
                    )
                    if emp_partner_session_id
                    else None,
                ),
                None,
            )
        except ParseError as exc:
            return None, exc
        except ConsistencyError as exc:
            return None, ParseError(str(exc), field="Result")

    def to_builder(self) -> "AcknowledgementBuilder[TRequest]":
        return AcknowledgementBuilder(
            meta=self.meta.to_builder(),
            result=self.result,
            status_code=self.status_code.to_builder(),
            session_id=self.session_id,
            cpo_partner_session_id=self.cpo_partner_session_id,
            emp_partner_session_id=self.emp_partner_session_id,
        )

    def __str__(self) -> str:
        return f"{'Success' if self.result else 'Failed'}: {self.status_code}"


class AcknowledgementBuilder(Generic[TRequest]):
    """Mutable companion of :class:`Acknowledgement`.

    When ``result`` is left unset it follows the status code.
    """

    def __init__(
        self,
        meta: Optional[ResponseBuilder] = None,
        result: Optional[bool] = None,
        status_code: Optional[StatusCodeBuilder] = None,
        session_id: Optional[SessionId] = None,
        cpo_partner_session_id: Optional[CPOPartnerSessionId] = None,
        emp_partner_session_id: Optional[EMPPartnerSessionId] = None,
    ) -> None:
        self.meta = meta or ResponseBuilder()
        self.result = result
        self.status_code = status_code or StatusCodeBuilder()
        self.session_id = session_id
        self.cpo_partner_session_id = cpo_partner_session_id
        self.emp_partner_session_id = emp_partner_session_id

    def to_immutable(self) -> Acknowledgement[TRequest]:
        status_code = self.status_code.to_immutable()
        return Acknowledgement(
            meta=self.meta.to_immutable(),
            result=status_code.has_result if self.result is None else self.result,
            status_code=status_code,
            session_id=self.session_id,
            cpo_partner_session_id=self.cpo_partner_session_id,
            emp_partner_session_id=self.emp_partner_session_id,
        )
