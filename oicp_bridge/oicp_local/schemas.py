"""pydantic schemas describing the OICP 2.3 JSON wire shapes.

The schemas only validate structure and primitive types.  The domain
dataclasses (``StatusCode``, ``Acknowledgement``, the messages) are built
from validated schemas and own the protocol invariants.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)

from .errors import ParseError


def _assume_utc(value: datetime) -> datetime:
    # Timestamps without an offset are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def validate_wire(schema: type[WireModel], data: Any, what: str):
    """Validate ``data`` against ``schema`` and return ``(model, error)``."""
    if not isinstance(data, dict):
        return None, ParseError(f"The given JSON representation of {what} must be an object!")
    try:
        return schema.model_validate(data), None
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return None, ParseError(
            f"The given JSON representation of {what} is invalid: {first.get('msg')}",
            field=location or None,
        )


class StatusCodeSchema(WireModel):
    code: int = Field(alias="Code")
    description: Optional[StrictStr] = Field(default=None, alias="Description")
    additional_info: Optional[StrictStr] = Field(default=None, alias="AdditionalInfo")

    @field_validator("code", mode="before")
    @classmethod
    def _numeric_code(cls, value: Any) -> Any:
        # "000" in JSON, 0 in some partner implementations; never a boolean
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError("the status code must be numeric")
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                raise ValueError(f"'{value}' is not a numeric status code")
            return int(value)
        return value


class AcknowledgementSchema(WireModel):
    result: StrictBool = Field(alias="Result")
    status_code: Dict[str, Any] = Field(alias="StatusCode")
    session_id: Optional[StrictStr] = Field(default=None, alias="SessionID")
    cpo_partner_session_id: Optional[StrictStr] = Field(
        default=None,
        validation_alias=AliasChoices("CPOPartnerSessionID", "PartnerSessionID"),
    )
    emp_partner_session_id: Optional[StrictStr] = Field(
        default=None, validation_alias=AliasChoices("EMPPartnerSessionID")
    )
    custom_data: Optional[Dict[str, Any]] = Field(default=None, alias="CustomData")


class PagedResponseSchema(WireModel):
    content: List[Dict[str, Any]] = Field(default_factory=list)
    status_code: Optional[Dict[str, Any]] = Field(default=None, alias="StatusCode")
    first: Optional[StrictBool] = None
    last: Optional[StrictBool] = None
    number: Optional[NonNegativeInt] = None
    number_of_elements: Optional[NonNegativeInt] = Field(default=None, alias="numberOfElements")
    size: Optional[NonNegativeInt] = None
    total_elements: Optional[NonNegativeInt] = Field(default=None, alias="totalElements")
    total_pages: Optional[NonNegativeInt] = Field(default=None, alias="totalPages")
    custom_data: Optional[Dict[str, Any]] = Field(default=None, alias="CustomData")


class EvcoIdentificationSchema(WireModel):
    evco_id: StrictStr = Field(alias="EvcoID")


class RFIDIdentificationSchema(WireModel):
    uid: StrictStr = Field(alias="UID")


class QRCodeIdentificationSchema(WireModel):
    evco_id: StrictStr = Field(alias="EvcoID")
    pin: Optional[StrictStr] = Field(default=None, alias="PIN")


class IdentificationSchema(WireModel):
    remote: Optional[EvcoIdentificationSchema] = Field(default=None, alias="RemoteIdentification")
    rfid: Optional[RFIDIdentificationSchema] = Field(
        default=None, alias="RFIDMifareFamilyIdentification"
    )
    qr_code: Optional[QRCodeIdentificationSchema] = Field(
        default=None, alias="QRCodeIdentification"
    )
    plug_and_charge: Optional[EvcoIdentificationSchema] = Field(
        default=None, alias="PlugAndChargeIdentification"
    )


class AuthorizeRemoteStartSchema(WireModel):
    provider_id: StrictStr = Field(alias="ProviderID")
    evse_id: StrictStr = Field(alias="EvseID")
    identification: IdentificationSchema = Field(alias="Identification")
    session_id: Optional[StrictStr] = Field(default=None, alias="SessionID")
    cpo_partner_session_id: Optional[StrictStr] = Field(default=None, alias="CPOPartnerSessionID")
    emp_partner_session_id: Optional[StrictStr] = Field(default=None, alias="EMPPartnerSessionID")
    partner_product_id: Optional[StrictStr] = Field(default=None, alias="PartnerProductID")
    custom_data: Optional[Dict[str, Any]] = Field(default=None, alias="CustomData")


class AuthorizeRemoteStopSchema(WireModel):
    provider_id: StrictStr = Field(alias="ProviderID")
    evse_id: StrictStr = Field(alias="EvseID")
    session_id: StrictStr = Field(alias="SessionID")
    cpo_partner_session_id: Optional[StrictStr] = Field(default=None, alias="CPOPartnerSessionID")
    emp_partner_session_id: Optional[StrictStr] = Field(default=None, alias="EMPPartnerSessionID")
    custom_data: Optional[Dict[str, Any]] = Field(default=None, alias="CustomData")


class ChargeDetailRecordSchema(WireModel):
    session_id: StrictStr = Field(alias="SessionID")
    evse_id: StrictStr = Field(alias="EvseID")
    identification: IdentificationSchema = Field(alias="Identification")
    charging_start: UtcDatetime = Field(alias="ChargingStart")
    charging_end: UtcDatetime = Field(alias="ChargingEnd")
    consumed_energy: float = Field(alias="ConsumedEnergy", ge=0)
    cpo_partner_session_id: Optional[StrictStr] = Field(default=None, alias="CPOPartnerSessionID")
    emp_partner_session_id: Optional[StrictStr] = Field(default=None, alias="EMPPartnerSessionID")
    partner_product_id: Optional[StrictStr] = Field(default=None, alias="PartnerProductID")


class GetChargeDetailRecordsSchema(WireModel):
    provider_id: StrictStr = Field(alias="ProviderID")
    from_: UtcDatetime = Field(alias="From")
    to: UtcDatetime = Field(alias="To")
    session_ids: Optional[List[StrictStr]] = Field(default=None, alias="SessionID")
    custom_data: Optional[Dict[str, Any]] = Field(default=None, alias="CustomData")


class AuthorizeRemoteReservationStartSchema(AuthorizeRemoteStartSchema):
    duration: Optional[NonNegativeInt] = Field(default=None, alias="Duration")


class AuthorizeRemoteReservationStopSchema(AuthorizeRemoteStopSchema):
    pass
