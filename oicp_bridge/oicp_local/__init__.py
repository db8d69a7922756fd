"""Core OICP abstractions used by both JSON and XML transports."""

from .acknowledgement import Acknowledgement, AcknowledgementBuilder
from .errors import (
    ConsistencyError,
    ErrorKind,
    InvalidFieldError,
    MissingMandatoryFieldError,
    OICPError,
    ParseError,
)
from .ids import (
    CPOPartnerSessionId,
    EMPPartnerSessionId,
    EventTrackingId,
    EVSEId,
    PartnerProductId,
    ProcessId,
    ProviderId,
    SessionId,
)
from .messages import (
    AuthorizeRemoteReservationStartRequest,
    AuthorizeRemoteReservationStopRequest,
    AuthorizeRemoteStartRequest,
    AuthorizeRemoteStopRequest,
    ChargeDetailRecord,
    GetChargeDetailRecordsRequest,
    GetChargeDetailRecordsResponse,
    GetChargeDetailRecordsResponseBuilder,
    Identification,
    IdentificationType,
)
from .paging import (
    APagedRequest,
    APagedResponse,
    PagedResponseBuilder,
    PageFilter,
    PagingInfo,
    collect_pages,
    is_last_page,
    page_slice,
)
from .request import DEFAULT_REQUEST_TIMEOUT, ARequest, RequestMetadata
from .response import AResponse, ResponseBuilder, ResponseMetadata, TransportInfo
from .service import CDRService, CPOService
from .status_code import StatusCode, StatusCodeBuilder, StatusCodes

__all__ = [
    "Acknowledgement",
    "AcknowledgementBuilder",
    "APagedRequest",
    "APagedResponse",
    "ARequest",
    "AResponse",
    "AuthorizeRemoteReservationStartRequest",
    "AuthorizeRemoteReservationStopRequest",
    "AuthorizeRemoteStartRequest",
    "AuthorizeRemoteStopRequest",
    "CDRService",
    "ChargeDetailRecord",
    "ConsistencyError",
    "CPOPartnerSessionId",
    "CPOService",
    "DEFAULT_REQUEST_TIMEOUT",
    "EMPPartnerSessionId",
    "ErrorKind",
    "EventTrackingId",
    "EVSEId",
    "GetChargeDetailRecordsRequest",
    "GetChargeDetailRecordsResponse",
    "GetChargeDetailRecordsResponseBuilder",
    "Identification",
    "IdentificationType",
    "InvalidFieldError",
    "MissingMandatoryFieldError",
    "OICPError",
    "PagedResponseBuilder",
    "PageFilter",
    "PagingInfo",
    "ParseError",
    "PartnerProductId",
    "ProcessId",
    "ProviderId",
    "RequestMetadata",
    "ResponseBuilder",
    "ResponseMetadata",
    "SessionId",
    "StatusCode",
    "StatusCodeBuilder",
    "StatusCodes",
    "TransportInfo",
    "collect_pages",
    "is_last_page",
    "page_slice",
]
