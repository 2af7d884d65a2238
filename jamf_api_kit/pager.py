"""
Paged reading of Jamf Pro API collection lists.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import quote_plus

from .connection import Connection, resolve_cnx
from .exceptions import UnsupportedError

SORT_PARAM = "&sort="
FILTER_PARAM = "&filter="


def parse_url_sort_param(sort: Union[str, Sequence[str], None]) -> Optional[str]:
    """
    Turn sort criteria into a URL parameter.

    Examples:
        >>> parse_url_sort_param(["name:asc", "id:desc"])
        '&sort=name%3Aasc%2Cid%3Adesc'
    """
    if not sort:
        return None
    if isinstance(sort, str):
        if sort.startswith(SORT_PARAM):
            return sort
        return SORT_PARAM + quote_plus(sort)
    if isinstance(sort, (list, tuple)):
        return SORT_PARAM + quote_plus(",".join(str(item) for item in sort))
    raise TypeError("sort criteria must be a string or a list of strings")


def parse_url_filter_param(filter_str: Optional[str]) -> Optional[str]:
    """Turn an RSQL filter into a URL parameter."""
    if not filter_str:
        return None
    filter_str = str(filter_str)
    if filter_str.startswith(FILTER_PARAM):
        return filter_str
    return FILTER_PARAM + quote_plus(filter_str)


class Pager:
    """
    Read a collection list one page at a time.

    Examples:
        >>> pager = Pager("v1/buildings", page_size=50, sort="name:asc")
        >>> first = pager.fetch_next_page()
        >>> second = pager.fetch_next_page()
    """

    MIN_PAGE_SIZE = 1
    MAX_PAGE_SIZE = 2000
    DEFAULT_PAGE_SIZE = 100

    @classmethod
    def all_pages(
        cls,
        list_path: str,
        sort: Union[str, Sequence[str], None] = None,
        filter: Optional[str] = None,
        instantiate: Optional[Callable[[Dict[str, Any]], Any]] = None,
        cnx: Optional[Connection] = None,
    ) -> List[Any]:
        """Read every page with the largest page size, until a page comes back empty."""
        pager = cls(
            list_path,
            page_size=cls.MAX_PAGE_SIZE,
            sort=sort,
            filter=filter,
            instantiate=instantiate,
            cnx=cnx,
        )
        data: List[Any] = []
        while True:
            fetched = pager.fetch_next_page()
            if not fetched:
                break
            data.extend(fetched)
        return data

    def __init__(
        self,
        list_path: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        sort: Union[str, Sequence[str], None] = None,
        filter: Optional[str] = None,
        instantiate: Optional[Callable[[Dict[str, Any]], Any]] = None,
        cnx: Optional[Connection] = None,
    ):
        self._validate_page_size(page_size)
        self.cnx = resolve_cnx(cnx)
        self.list_path = list_path
        self.page_size = page_size
        self.sort = parse_url_sort_param(sort)
        self.filter = parse_url_filter_param(filter)
        self.instantiate = instantiate
        self.next_page = 0
        self.last_fetched_page: Optional[int] = None
        self.query_path = f"{list_path}?page-size={page_size}{self.sort or ''}{self.filter or ''}"

        count_data = self.cnx.jp_get(f"{list_path}?page-size=1&page=0{self.filter or ''}") or {}
        self.total_count: int = count_data.get("totalCount", 0)
        # The totalCount of a filtered query isn't the count of matches
        self.total_pages: Optional[int] = None if self.filter else math.ceil(self.total_count / page_size)

    def fetch_next_page(self) -> List[Any]:
        return self.page(self.next_page, increment_next=True)

    def reset(self, to_page: Union[int, str] = 0) -> None:
        if to_page == "first":
            to_page = 0
        self._validate_page_number(to_page)
        self.next_page = to_page

    def page(self, page_number: Union[int, str], increment_next: bool = False) -> List[Any]:
        """
        Fetch one page by number (zero-based), or "first" / "last".

        Raises:
            UnsupportedError: "last" was requested for a filtered query.
        """
        if page_number == "first":
            page_number = 0
        elif page_number == "last":
            if self.filter:
                raise UnsupportedError("Cannot use 'last' with filtered queries")
            page_number = max((self.total_pages or 0) - 1, 0)
        self._validate_page_number(page_number)

        data = self.cnx.jp_get(f"{self.query_path}&page={page_number}") or {}
        results = list(data.get("results") or [])
        if self.instantiate:
            results = [self.instantiate(item) for item in results]

        if increment_next:
            self.last_fetched_page = page_number
            self.next_page = page_number + 1
        return results

    def _validate_page_size(self, page_size: Any) -> None:
        if isinstance(page_size, int) and not isinstance(page_size, bool) and self.MIN_PAGE_SIZE <= page_size <= self.MAX_PAGE_SIZE:
            return
        raise ValueError(f"page_size must be an integer from {self.MIN_PAGE_SIZE} to {self.MAX_PAGE_SIZE}")

    @staticmethod
    def _validate_page_number(page_number: Any) -> None:
        if isinstance(page_number, int) and not isinstance(page_number, bool) and page_number >= 0:
            return
        raise ValueError("Page number must be an integer 0 or higher")
