"""
Object history ("change log") for Jamf Pro API resources.

Classes with per-object history mix in ChangeLog; the entries live at
``<get_path>/<id>/history``. Classes whose history covers the whole
collection (e.g. inventory preload records) call the class-level methods
without an id, which reads ``<get_path>/history``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from .connection import Connection, resolve_cnx
from .exceptions import UnsupportedError
from .pager import Pager, parse_url_filter_param, parse_url_sort_param
from .schemas import HistorySearchResults, ObjectHistory, ObjectHistoryNote
from .utils import hybridmethod
from .validate import non_empty_string

HISTORY_PATH = "history"


class _ChangeLogPaging:
    """Where a paged change-log read is up to."""

    def __init__(self, cnx: Connection, path: str):
        self.cnx = cnx
        self.path = path
        self.page: Optional[int] = None
        self.fetched_count = 0
        self.total_count: Optional[int] = None


class ChangeLog:
    """Mixin for CollectionResource classes with object history."""

    INSTANCE_CHANGE_LOG = True

    @classmethod
    def history_path(cls, obj_id: Any = None) -> str:
        if obj_id is not None:
            return f"{cls.get_path()}/{obj_id}/{HISTORY_PATH}"
        return f"{cls.get_path()}/{HISTORY_PATH}"

    @hybridmethod
    def change_log(
        cls,
        obj_id: Any = None,
        sort: Union[str, Sequence[str], None] = None,
        filter: Optional[str] = None,
        page_size: Optional[int] = None,
        refresh: bool = False,
        cnx: Optional[Connection] = None,
    ) -> List[ObjectHistory]:
        """
        History entries, newest first by default.

        With no sort, filter or page_size, every entry is read and cached per
        connection until ``refresh=True``. With a page_size, only the first
        page is returned; get the rest with ``next_page_of_change_log()``.
        """
        cnx = resolve_cnx(cnx)
        if page_size is None and not sort and not filter:
            return cls._cached_change_log(obj_id, refresh, cnx)

        sort_param = parse_url_sort_param(sort) or ""
        filter_param = parse_url_filter_param(filter) or ""
        if page_size is not None:
            return cls._first_change_log_page(obj_id, page_size, sort_param, filter_param, cnx)
        return cls._fetch_all_change_log_entries(obj_id, sort_param, filter_param, cnx)

    @change_log.instancemethod
    def change_log(self, sort=None, filter=None, page_size=None, refresh=False) -> List[ObjectHistory]:
        self._check_instance_change_log()
        return type(self).change_log(
            self._values.get("id"), sort=sort, filter=filter, page_size=page_size, refresh=refresh, cnx=self.cnx
        )

    @classmethod
    def next_page_of_change_log(cls) -> List[ObjectHistory]:
        """The next page of a paged ``change_log`` read, or [] when done."""
        paging: Optional[_ChangeLogPaging] = cls.__dict__.get("_change_log_paging")
        if paging is None:
            return []
        paging.page = 0 if paging.page is None else paging.page + 1

        result = HistorySearchResults(paging.cnx.jp_get(f"{paging.path}&page={paging.page}"))
        paging.fetched_count += len(result.results)
        if paging.total_count is None:
            paging.total_count = result.totalCount or 0
        if paging.fetched_count >= paging.total_count:
            cls._change_log_paging = None
        return list(result.results)

    @hybridmethod
    def change_log_count(cls, obj_id: Any = None, cnx: Optional[Connection] = None) -> int:
        cnx = resolve_cnx(cnx)
        result = HistorySearchResults(cnx.jp_get(f"{cls.history_path(obj_id)}?page=0&page-size=1"))
        return result.totalCount or 0

    @change_log_count.instancemethod
    def change_log_count(self) -> int:
        self._check_instance_change_log()
        return type(self).change_log_count(self._values.get("id"), cnx=self.cnx)

    @hybridmethod
    def add_change_log_note(cls, note: str, obj_id: Any = None, cnx: Optional[Connection] = None) -> ObjectHistory:
        """Add a note to the history, returning the new entry."""
        cnx = resolve_cnx(cnx)
        note_to_send = ObjectHistoryNote({"note": non_empty_string(note, "note")})
        result = cnx.jp_post(cls.history_path(obj_id), note_to_send.to_jamf())
        cnx.collection_cache.delete(_cache_key(cls, obj_id))
        return ObjectHistory(result or {})

    @add_change_log_note.instancemethod
    def add_change_log_note(self, note: str) -> ObjectHistory:
        self._check_instance_change_log()
        return type(self).add_change_log_note(note, self._values.get("id"), cnx=self.cnx)

    # -------- Helpers --------
    def _check_instance_change_log(self) -> None:
        if not self.INSTANCE_CHANGE_LOG:
            raise UnsupportedError(
                f"{type(self).__name__} objects do not have individual change logs. "
                f"Use {type(self).__name__}.change_log()"
            )

    @classmethod
    def _cached_change_log(cls, obj_id: Any, refresh: bool, cnx: Connection) -> List[ObjectHistory]:
        key = _cache_key(cls, obj_id)
        if refresh:
            cnx.collection_cache.delete(key)
        cached = cnx.collection_cache.get(key)
        if cached is not None:
            return list(cached)
        entries = cls._fetch_all_change_log_entries(obj_id, "", "", cnx)
        cnx.collection_cache.set(key, entries)
        return list(entries)

    @classmethod
    def _first_change_log_page(cls, obj_id: Any, page_size: int, sort: str, filter_param: str, cnx: Connection) -> List[ObjectHistory]:
        if not isinstance(page_size, int) or not Pager.MIN_PAGE_SIZE <= page_size <= Pager.MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be an integer from {Pager.MIN_PAGE_SIZE} to {Pager.MAX_PAGE_SIZE}")
        path = f"{cls.history_path(obj_id)}?page-size={page_size}{sort}{filter_param}"
        cls._change_log_paging = _ChangeLogPaging(cnx, path)
        return cls.next_page_of_change_log()

    @classmethod
    def _fetch_all_change_log_entries(cls, obj_id: Any, sort: str, filter_param: str, cnx: Connection) -> List[ObjectHistory]:
        paged_path = f"{cls.history_path(obj_id)}?page-size={Pager.MAX_PAGE_SIZE}{sort}{filter_param}"
        page = 0
        result = HistorySearchResults(cnx.jp_get(f"{paged_path}&page={page}"))
        entries = list(result.results)
        total = result.totalCount or 0
        while len(entries) < total:
            page += 1
            result = HistorySearchResults(cnx.jp_get(f"{paged_path}&page={page}"))
            if not result.results:
                break
            entries.extend(result.results)
        return entries


def _cache_key(cls: type, obj_id: Any) -> tuple:
    return (cls, HISTORY_PATH, None if obj_id is None else str(obj_id))


def change_log_summary(entries: List[ObjectHistory]) -> List[Dict[str, Any]]:
    """Flatten history entries into dicts for tabular display."""
    return [
        {"date": entry.date, "username": entry.username, "note": entry.note, "details": entry.details}
        for entry in entries
    ]
