"""OICP status codes.

Every OICP response carries a ``StatusCode``: a numeric result code from a
fixed catalogue plus two advisory texts.  Only :attr:`StatusCode.code` (and
the derived :attr:`StatusCode.has_result`) may drive control flow; the texts
are for humans and log files.

JSON (OICP 2.3)::

    {"Code": 0, "Description": "Success", "AdditionalInfo": "..."}

XML (OICP 2.x SOAP)::

    <CommonTypes:StatusCode>
      <CommonTypes:Code>000</CommonTypes:Code>
      <CommonTypes:Description>Success</CommonTypes:Description>
    </CommonTypes:StatusCode>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

from .errors import MissingMandatoryFieldError, ParseError
from .schemas import StatusCodeSchema, validate_wire

COMMON_TYPES_NS = "http://www.hubject.com/b2b/services/commontypes/v2.1"


def qname(local: str, namespace: str = COMMON_TYPES_NS) -> str:
    return f"{{{namespace}}}{local}"


class StatusCodes(IntEnum):
    """The catalogue of OICP result codes."""

    Success = 0
    HubjectSystemError = 1
    HubjectDatabaseError = 2
    DataTransactionError = 9
    UnauthorizedAccess = 17
    InconsistentEVSEId = 18
    InconsistentEVCOId = 19
    SystemError = 21
    DataError = 22
    QRCodeAuthenticationFailed = 101
    RFIDAuthenticationFailed_InvalidUID = 102
    RFIDAuthenticationFailed_CardNotReadable = 103
    PINAuthenticationFailed = 105
    NoValidContract = 106
    NoPositiveAuthenticationResponse = 210
    ServiceNotAvailable = 320
    SessionIsInvalid = 400
    CommunicationToEVSEFailed = 501
    NoEVConnectedToEVSE = 510
    EVSEAlreadyReserved = 601
    EVSEAlreadyInUse_WrongToken = 602
    UnknownEVSEID = 603
    EVSENotHubjectCompatible = 604
    EVSEOutOfService = 700

    @property
    def wire_code(self) -> str:
        return f"{int(self):03d}"

    @classmethod
    def from_wire(cls, value: int) -> "StatusCodes":
        try:
            return cls(value)
        except ValueError:
            raise ParseError(f"Unknown status code '{value}'!", field="Code") from None


@dataclass(frozen=True, slots=True)
class StatusCode:
    """Result code of an OICP operation."""

    code: StatusCodes
    description: str = ""
    additional_info: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", StatusCodes(self.code))
        if self.description is None:
            object.__setattr__(self, "description", "")
        if self.additional_info is None:
            object.__setattr__(self, "additional_info", "")

    @property
    def has_result(self) -> bool:
        return self.code == StatusCodes.Success

    # JSON ------------------------------------------------------------------

    @classmethod
    def try_parse_json(
        cls, data: Any
    ) -> Tuple[Optional["StatusCode"], Optional[ParseError]]:
        schema, error = validate_wire(StatusCodeSchema, data, "a status code")
        if error is not None:
            return None, error
        try:
            code = StatusCodes.from_wire(schema.code)
        except ParseError as exc:
            return None, exc
        return cls(code, schema.description, schema.additional_info), None

    @classmethod
    def parse_json(cls, data: Any) -> Optional["StatusCode"]:
        status_code, _ = cls.try_parse_json(data)
        return status_code

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {"Code": int(self.code)}
        if self.description:
            json["Description"] = self.description
        if self.additional_info:
            json["AdditionalInfo"] = self.additional_info
        return json

    # XML -------------------------------------------------------------------

    @classmethod
    def try_parse_xml(
        cls,
        element: ET.Element,
        expected_tag: Optional[str] = None,
        namespace: str = COMMON_TYPES_NS,
    ) -> Tuple[Optional["StatusCode"], Optional[ParseError]]:
        expected_tag = expected_tag or qname("StatusCode", namespace)
        if element is None or element.tag != expected_tag:
            found = None if element is None else element.tag
            return None, ParseError(
                f"Expected element '{expected_tag}', found '{found}'!"
            )

        code_text = (element.findtext(qname("Code", namespace)) or "").strip()
        if not code_text.isdigit():
            return None, ParseError(
                f"The status code '{code_text}' is not numeric!", field="Code"
            )
        try:
            code = StatusCodes.from_wire(int(code_text))
        except ParseError as exc:
            return None, exc

        return (
            cls(
                code,
                element.findtext(qname("Description", namespace)) or "",
                element.findtext(qname("AdditionalInfo", namespace)) or "",
            ),
            None,
        )

    @classmethod
    def parse_xml(
        cls,
        element: ET.Element,
        expected_tag: Optional[str] = None,
        namespace: str = COMMON_TYPES_NS,
    ) -> Optional["StatusCode"]:
        status_code, _ = cls.try_parse_xml(element, expected_tag, namespace)
        return status_code

    def to_xml(
        self, tag: Optional[str] = None, namespace: str = COMMON_TYPES_NS
    ) -> ET.Element:
        element = ET.Element(tag or qname("StatusCode", namespace))
        ET.SubElement(element, qname("Code", namespace)).text = self.code.wire_code
        if self.description:
            ET.SubElement(element, qname("Description", namespace)).text = self.description
        if self.additional_info:
            ET.SubElement(element, qname("AdditionalInfo", namespace)).text = self.additional_info
        return element

    def to_builder(self) -> "StatusCodeBuilder":
        return StatusCodeBuilder(self.code, self.description, self.additional_info)

    def __str__(self) -> str:
        text = f"StatusCode: {int(self.code)}"
        if self.description:
            text += f", description: {self.description}"
        if self.additional_info:
            text += f", additional info: {self.additional_info}"
        return text


class StatusCodeBuilder:
    """Mutable companion of :class:`StatusCode`.

    Lets a handler accumulate description and additional info over several
    processing stages before freezing the status code.
    """

    def __init__(
        self,
        code: Optional[StatusCodes] = None,
        description: Optional[str] = None,
        additional_info: Optional[str] = None,
    ) -> None:
        self.code = code
        self.description = description
        self.additional_info = additional_info

    @property
    def has_result(self) -> bool:
        return self.code == StatusCodes.Success

    def append_description(self, text: str, separator: str = " ") -> "StatusCodeBuilder":
        self.description = separator.join(filter(None, (self.description, text)))
        return self

    def append_additional_info(self, text: str, separator: str = "\n") -> "StatusCodeBuilder":
        self.additional_info = separator.join(filter(None, (self.additional_info, text)))
        return self

    def to_immutable(self) -> StatusCode:
        if self.code is None:
            raise MissingMandatoryFieldError("code")
        return StatusCode(self.code, self.description, self.additional_info)
