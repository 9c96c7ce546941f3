import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Tuple, TypeVar

import aiohttp
from pydantic import BaseModel, ConfigDict

from basespace.domain.exceptions import DecodingError, PaginationError
from basespace.domain.result import Failure, Result, Success, collect_in_order
from basespace.infrastructure.acl import extract, wire_path
from basespace.infrastructure.basespace_client import ApiRequest, BaseSpaceClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Largest page BaseSpace serves for a single list request
PAGE_SIZE = 1024
COUNT_STAGE = "count query"


class PagingConvention(Enum):
    """
    Where a list endpoint reports its total item count and its items.

    v1 wraps both in a ``Response`` object, v2 reports the count under
    ``Paging`` and the items at the top level.
    """
    RESPONSE = (("Response", "TotalCount"), ("Response", "Items"))
    PAGING = (("Paging", "TotalCount"), ("Items",))

    @property
    def count_path(self) -> Tuple[str, ...]:
        return self.value[0]

    @property
    def items_path(self) -> Tuple[str, ...]:
        return self.value[1]


class ListEndpoint(BaseModel):
    """A paginated list resource and the paging convention it follows."""
    model_config = ConfigDict(frozen=True)

    request: ApiRequest
    convention: PagingConvention


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    return (total + page_size - 1) // page_size


class Paginator:
    """
    Retrieves every item of a list resource, one concurrent request per page.

    The total is asked for first; pages are then fetched in parallel and merged
    in ascending page order. Either every page decodes and the full list is
    returned, or the failure of the lowest-indexed failing page is.
    """

    def __init__(self, client: BaseSpaceClient, page_size: int = PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    async def fetch_total_count(self, session: aiohttp.ClientSession, endpoint: ListEndpoint) -> Result[int]:
        request = endpoint.request.with_params(limit=1, offset=0)
        response = await self.client.get_json(session, request, COUNT_STAGE)
        if isinstance(response, Failure):
            return response

        path = endpoint.convention.count_path
        try:
            total = extract(response.value, path)
        except DecodingError as e:
            return Failure(e.during(COUNT_STAGE))

        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            return Failure(DecodingError(wire_path(path), f"expected a non-negative integer, got {total!r}", COUNT_STAGE))
        return Success(total)

    async def fetch_all(
        self,
        session: aiohttp.ClientSession,
        endpoint: ListEndpoint,
        decode: Callable[[Any], T],
    ) -> Result[List[T]]:
        """
        Fetches and decodes every item of ``endpoint``.

        Args:
            session (aiohttp.ClientSession): Session used for all requests.
            endpoint (ListEndpoint): The list resource and its paging convention.
            decode (Callable[[Any], T]): Builds one item from its raw JSON object,
                raising DecodingError on mismatch.

        Returns:
            Result[List[T]]: Items in page order, or the count query failure,
            or a PaginationError for the lowest-indexed failing page.
        """
        total = await self.fetch_total_count(session, endpoint)
        if isinstance(total, Failure):
            return total

        pages = page_count(total.value, self.page_size)
        if pages == 0:
            return Success([])

        logger.info(f"Fetching {total.value} items from {endpoint.request.url} in {pages} page(s).")
        results = await asyncio.gather(*(
            self._fetch_page(session, endpoint, decode, index) for index in range(pages)
        ))

        merged = collect_in_order(results)
        if isinstance(merged, Failure):
            logger.error(f"Listing {endpoint.request.url} failed: {merged.error}")
            return merged
        return Success([item for page in merged.value for item in page])

    async def _fetch_page(
        self,
        session: aiohttp.ClientSession,
        endpoint: ListEndpoint,
        decode: Callable[[Any], T],
        index: int,
    ) -> Result[List[T]]:
        stage = f"page {index}"
        request: ApiRequest = endpoint.request.with_params(
            limit=self.page_size,
            offset=index * self.page_size,
        )
        response = await self.client.get_json(session, request, stage)
        if isinstance(response, Failure):
            return Failure(PaginationError(index, response.error))

        path = endpoint.convention.items_path
        try:
            raw_items = extract(response.value, path)
            if not isinstance(raw_items, list):
                raise DecodingError(wire_path(path), "expected an array")

            items = []
            for position, raw_item in enumerate(raw_items):
                try:
                    items.append(decode(raw_item))
                except DecodingError as e:
                    raise e.nested(f"{wire_path(path)}[{position}]")
        except DecodingError as e:
            return Failure(PaginationError(index, e.during(stage)))

        return Success(items)
