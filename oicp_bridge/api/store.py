"""In-memory charge detail record store backing the CDR listing."""

from datetime import timedelta
from itertools import count
from typing import Callable, Dict, List, Optional, Tuple

from oicp_bridge.oicp_local import (
    CDRService,
    ChargeDetailRecord,
    GetChargeDetailRecordsRequest,
    GetChargeDetailRecordsResponse,
    GetChargeDetailRecordsResponseBuilder,
    ProcessId,
    ProviderId,
    ResponseBuilder,
    StatusCodeBuilder,
    StatusCodes,
    page_slice,
)
from oicp_bridge.oicp_local.request import utc_now

# Maps sequence number -> (provider, record)
charge_detail_records: Dict[int, Tuple[ProviderId, ChargeDetailRecord]] = {}

_cdr_seq = count(1)

SORT_KEYS: Dict[str, Callable[[ChargeDetailRecord], object]] = {
    "ChargingStart": lambda record: record.charging_start,
    "ChargingEnd": lambda record: record.charging_end,
    "SessionID": lambda record: str(record.session_id),
    "EvseID": lambda record: str(record.evse_id),
    "ConsumedEnergy": lambda record: record.consumed_energy,
}


def add_charge_detail_record(provider_id: ProviderId, record: ChargeDetailRecord) -> int:
    seq = next(_cdr_seq)
    charge_detail_records[seq] = (provider_id, record)
    return seq


def clear_charge_detail_records() -> None:
    charge_detail_records.clear()


def find_charge_detail_records(request: GetChargeDetailRecordsRequest) -> List[ChargeDetailRecord]:
    """Return the records of ``request.provider_id`` started within the window."""

    records = [
        record
        for _, (provider_id, record) in sorted(charge_detail_records.items())
        if provider_id == request.provider_id
        and request.from_ <= record.charging_start <= request.to
        and (not request.session_ids or record.session_id in request.session_ids)
    ]
    # Applied last to first so the first sort entry ends up as primary key
    for entry in reversed(request.sort_order):
        name, _, direction = entry.partition(",")
        key = SORT_KEYS.get(name.strip())
        if key is not None:
            records.sort(key=key, reverse=direction.strip().lower() == "desc")
    return records


class StoreCDRService(CDRService):
    """Serve charge detail records page by page from the in-memory store."""

    def __init__(self, default_page_size: int = 20) -> None:
        self.default_page_size = default_page_size

    async def get_charge_detail_records(
        self, request: GetChargeDetailRecordsRequest
    ) -> GetChargeDetailRecordsResponse:
        records = find_charge_detail_records(request)
        meta = ResponseBuilder(
            response_timestamp=utc_now(),
            process_id=request.process_id or ProcessId.new(),
            runtime=max(utc_now() - request.timestamp, timedelta(0)),
        ).answer(request)
        builder = GetChargeDetailRecordsResponseBuilder(meta=meta)

        page = request.page or 0
        size = request.size or self.default_page_size
        if page < 0 or size <= 0:
            builder.status_code = StatusCodeBuilder(
                StatusCodes.DataError, "Invalid paging parameters!", f"page={page}, size={size}"
            )
            return builder.to_immutable()
        if page > 0 and page * size >= len(records):
            builder.status_code = StatusCodeBuilder(
                StatusCodes.DataError, f"Page {page} is out of range!"
            )
            return builder.to_immutable()

        content, paging = page_slice(records, request.paging, self.default_page_size)
        builder.status_code = StatusCodeBuilder(StatusCodes.Success, "Success")
        builder.add(content).set_paging(paging)
        return builder.to_immutable()
