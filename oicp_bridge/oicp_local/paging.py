"""Paged requests and responses for OICP listing operations.

A paged request carries an optional filter (``?page=0&size=20&sort=...``)
that the server applies; a paged response reports where in the result set
the returned page sits::

    {"first": true, "last": false, "number": 0, "numberOfElements": 100,
     "size": 100, "totalElements": 250, "totalPages": 3, "content": [...]}

All paging fields are hints.  A caller walking the pages must stop as soon
as ``last`` is true or a page is shorter than the requested size, see
:func:`is_last_page`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import InvalidFieldError
from .request import ARequest
from .response import AResponse, ResponseBuilder, ResponseMetadata
from .status_code import StatusCode, StatusCodeBuilder


@dataclass(frozen=True, slots=True)
class PageFilter:
    """Page/size/sort filter of a listing request.

    ``sort_order`` entries have the form ``"property[,asc|desc]"``.  Nothing
    is validated here, rejecting out-of-range pages is up to the server.
    """

    page: Optional[int] = None
    size: Optional[int] = None
    sort_order: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "sort_order", tuple(self.sort_order or ()))

    @classmethod
    def from_query(
        cls,
        page: Optional[int] = None,
        size: Optional[int] = None,
        sort: Optional[Iterable[str]] = None,
    ) -> "PageFilter":
        return cls(page, size, tuple(sort or ()))

    def to_query_params(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if self.page is not None:
            params.append(("page", str(self.page)))
        if self.size is not None:
            params.append(("size", str(self.size)))
        params.extend(("sort", entry) for entry in self.sort_order)
        return params

    def next_page(self) -> "PageFilter":
        return replace(self, page=(self.page or 0) + 1)


class APagedRequest(ARequest):
    """A request whose result is delivered page by page."""

    __slots__ = ()

    paging: PageFilter

    @property
    def page(self) -> Optional[int]:
        return self.paging.page

    @property
    def size(self) -> Optional[int]:
        return self.paging.size

    @property
    def sort_order(self) -> Tuple[str, ...]:
        return self.paging.sort_order

    def with_paging(self, paging: PageFilter):
        return replace(self, paging=paging)


@dataclass(frozen=True, slots=True)
class PagingInfo:
    first: Optional[bool] = None
    last: Optional[bool] = None
    number: Optional[int] = None
    number_of_elements: Optional[int] = None
    size: Optional[int] = None
    total_elements: Optional[int] = None
    total_pages: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("number", "number_of_elements", "size", "total_elements", "total_pages"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidFieldError(f"The paging field '{name}' must not be negative!")

        if self.number is None:
            return
        if self.total_pages is not None and self.total_pages > 0 and self.number >= self.total_pages:
            raise InvalidFieldError(
                f"Page number {self.number} is out of range for {self.total_pages} pages!"
            )
        if self.last and self.total_pages is not None and self.number != self.total_pages - 1:
            raise InvalidFieldError(
                f"Page {self.number} is flagged as last page, but there are {self.total_pages} pages!"
            )
        if self.first is not None and self.first != (self.number == 0):
            raise InvalidFieldError(f"Page {self.number} has an inconsistent 'first' flag!")

    @classmethod
    def for_slice(cls, page: int, size: int, total_elements: int) -> "PagingInfo":
        """Paging info for page ``page`` of ``size`` over ``total_elements``."""
        if size <= 0:
            raise InvalidFieldError("The page size must be positive!")
        total_pages = math.ceil(total_elements / size)
        start = page * size
        number_of_elements = max(0, min(size, total_elements - start))
        return cls(
            first=page == 0,
            last=page >= total_pages - 1,
            number=page,
            number_of_elements=number_of_elements,
            size=size,
            total_elements=total_elements,
            total_pages=total_pages or None,
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PagingInfo":
        return cls(
            first=data.get("first"),
            last=data.get("last"),
            number=data.get("number"),
            number_of_elements=data.get("numberOfElements"),
            size=data.get("size"),
            total_elements=data.get("totalElements"),
            total_pages=data.get("totalPages"),
        )

    def to_json(self) -> Dict[str, Any]:
        json: Dict[str, Any] = {}
        for key, value in (
            ("first", self.first),
            ("last", self.last),
            ("number", self.number),
            ("numberOfElements", self.number_of_elements),
            ("size", self.size),
            ("totalElements", self.total_elements),
            ("totalPages", self.total_pages),
        ):
            if value is not None:
                json[key] = value
        return json


def is_last_page(
    paging: PagingInfo,
    requested_size: Optional[int],
    received: Optional[int] = None,
) -> bool:
    """Return ``True`` when a page loop must stop after this page.

    ``received`` is the number of elements actually delivered and stands in
    for ``numberOfElements`` when a partner omits it.  ``total_pages`` alone
    is never trusted, it may be absent.
    """
    if paging.last:
        return True
    count = paging.number_of_elements if paging.number_of_elements is not None else received
    if count == 0:
        return True
    if requested_size is not None and count is not None:
        return count < requested_size
    if paging.number is not None and paging.total_pages is not None:
        return paging.number >= paging.total_pages - 1
    return False


class APagedResponse(AResponse):
    """A response carrying one page of a listing."""

    __slots__ = ()

    status_code: Optional[StatusCode]
    paging: PagingInfo

    @property
    def first(self) -> Optional[bool]:
        return self.paging.first

    @property
    def last(self) -> Optional[bool]:
        return self.paging.last

    @property
    def number(self) -> Optional[int]:
        return self.paging.number

    @property
    def number_of_elements(self) -> Optional[int]:
        return self.paging.number_of_elements

    @property
    def size(self) -> Optional[int]:
        return self.paging.size

    @property
    def total_elements(self) -> Optional[int]:
        return self.paging.total_elements

    @property
    def total_pages(self) -> Optional[int]:
        return self.paging.total_pages

    def paged_json(self) -> Dict[str, Any]:
        """The paging envelope without the operation's own payload."""
        json = self.paging.to_json()
        if self.status_code is not None:
            json["StatusCode"] = self.status_code.to_json()
        if self.custom_data:
            json["CustomData"] = dict(self.custom_data)
        return json


@dataclass
class PagedResponseBuilder:
    """Mutable mirror of a paged response's envelope."""

    meta: ResponseBuilder = field(default_factory=ResponseBuilder)
    status_code: StatusCodeBuilder = field(default_factory=StatusCodeBuilder)
    first: Optional[bool] = None
    last: Optional[bool] = None
    number: Optional[int] = None
    number_of_elements: Optional[int] = None
    size: Optional[int] = None
    total_elements: Optional[int] = None
    total_pages: Optional[int] = None

    @classmethod
    def from_response(cls, response: APagedResponse) -> "PagedResponseBuilder":
        paging = response.paging
        return cls(
            meta=ResponseBuilder.from_metadata(response.meta),
            status_code=response.status_code.to_builder()
            if response.status_code is not None
            else StatusCodeBuilder(),
            first=paging.first,
            last=paging.last,
            number=paging.number,
            number_of_elements=paging.number_of_elements,
            size=paging.size,
            total_elements=paging.total_elements,
            total_pages=paging.total_pages,
        )

    def set_paging(self, paging: PagingInfo) -> "PagedResponseBuilder":
        self.first = paging.first
        self.last = paging.last
        self.number = paging.number
        self.number_of_elements = paging.number_of_elements
        self.size = paging.size
        self.total_elements = paging.total_elements
        self.total_pages = paging.total_pages
        return self

    def build_envelope(self) -> Tuple[ResponseMetadata, Optional[StatusCode], PagingInfo]:
        """Freeze metadata, status code and paging info.

        An untouched status code builder yields ``None`` since the status
        code of a paged response is optional.
        """
        status_code_builder = self.status_code
        status_code = (
            status_code_builder.to_immutable()
            if status_code_builder.code is not None
            else None
        )
        paging = PagingInfo(
            first=self.first,
            last=self.last,
            number=self.number,
            number_of_elements=self.number_of_elements,
            size=self.size,
            total_elements=self.total_elements,
            total_pages=self.total_pages,
        )
        return self.meta.to_immutable(), status_code, paging


def page_slice(items: Sequence[Any], paging: PageFilter, default_size: int) -> Tuple[List[Any], PagingInfo]:
    """Cut one page out of an in-memory result set."""
    page = paging.page or 0
    size = paging.size or default_size
    start = page * size
    return list(items[start:start + size]), PagingInfo.for_slice(page, size, len(items))


def collect_pages(
    fetch: Callable[[PageFilter], Tuple[Sequence[Any], PagingInfo]],
    paging: PageFilter,
    max_pages: Optional[int] = None,
) -> Iterator[Any]:
    """Yield all elements by fetching page after page until the last one."""
    current = paging if paging.page is not None else replace(paging, page=0)
    fetched = 0
    while True:
        items, info = fetch(current)
        yield from items
        fetched += 1
        if is_last_page(info, current.size, len(items)) or (
            max_pages is not None and fetched >= max_pages
        ):
            return
        current = current.next_page()
