from .dispatch import (
    AUTHORIZE_REMOTE_RESERVATION_START,
    AUTHORIZE_REMOTE_RESERVATION_STOP,
    AUTHORIZE_REMOTE_START,
    AUTHORIZE_REMOTE_STOP,
    EVENT_TRACKING_ID_HEADER,
    GET_CHARGE_DETAIL_RECORDS,
    PROCESS_ID_HEADER,
    OICPDispatcher,
)

__all__ = [
    "AUTHORIZE_REMOTE_RESERVATION_START",
    "AUTHORIZE_REMOTE_RESERVATION_STOP",
    "AUTHORIZE_REMOTE_START",
    "AUTHORIZE_REMOTE_STOP",
    "EVENT_TRACKING_ID_HEADER",
    "GET_CHARGE_DETAIL_RECORDS",
    "PROCESS_ID_HEADER",
    "OICPDispatcher",
]
