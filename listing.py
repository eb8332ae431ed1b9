"""
listing.py
Client-side list engine: filter, search, sort and paginate an in-memory member list.

One engine serves every member list in the console; each call site passes a
ListConfig naming the filters and sort keys it offers. Parameters a call site
does not offer are ignored, and out-of-range pages are clamped, so view state
never raises.
"""

from __future__ import annotations

import math
import unicodedata
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

from models import Member


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class IdCardFilter(str, Enum):
    ANY = "any"
    CREATED = "created"
    NOT_CREATED = "not_created"


SORT_KEYS = ("name", "status", "created_at", "id_card_created")

# Order a column gets when it first becomes the sort key
DEFAULT_SORT_ORDER = {
    "name": SortOrder.ASC,
    "status": SortOrder.ASC,
    "created_at": SortOrder.DESC,
    "id_card_created": SortOrder.DESC,
}


@dataclass(frozen=True)
class ListConfig:
    name: str
    sort_keys: tuple[str, ...] = SORT_KEYS
    default_sort: str = "created_at"
    default_order: SortOrder = SortOrder.DESC
    page_size: int = 10
    page_size_options: tuple[int, ...] = (10, 25, 50, 100)
    searchable: bool = True
    status_filter: bool = True
    id_card_filter: bool = False
    # Structural scope; overrides the id-card parameter when set
    id_card_scope: IdCardFilter | None = None

    def initial_params(self) -> "ViewParams":
        return ViewParams(
            sort_key=self.default_sort,
            sort_order=self.default_order,
            page_size=self.page_size,
        )


MEMBERS_TABLE = ListConfig(name="members", id_card_filter=True)

ID_CARD_STUDIO = ListConfig(
    name="id_card_studio",
    sort_keys=("name", "created_at"),
    page_size=8,
    page_size_options=(8,),
    id_card_scope=IdCardFilter.CREATED,
)

RECENT_MEMBERS = ListConfig(
    name="recent_members",
    sort_keys=("created_at",),
    page_size=5,
    page_size_options=(5,),
    searchable=False,
    status_filter=False,
)


@dataclass(frozen=True)
class ViewParams:
    """
    UI-owned view state for one list. Use the with_* helpers to change it:
    any filter or sort change sends the list back to page 1, a page size change
    keeps the page (the engine clamps it).
    """

    search: str = ""
    status: str | None = None
    id_card: IdCardFilter = IdCardFilter.ANY
    sort_key: str = "created_at"
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    page_size: int = 10

    def with_search(self, search: str) -> "ViewParams":
        return replace(self, search=search, page=1)

    def with_status(self, status: str | None) -> "ViewParams":
        return replace(self, status=status or None, page=1)

    def with_id_card(self, id_card: IdCardFilter) -> "ViewParams":
        return replace(self, id_card=IdCardFilter(id_card), page=1)

    def with_sort(self, sort_key: str, sort_order: SortOrder) -> "ViewParams":
        return replace(self, sort_key=sort_key, sort_order=SortOrder(sort_order), page=1)

    def toggle_sort(self, sort_key: str) -> "ViewParams":
        """Header click: flip the active column, or switch to a new one at its default order."""
        if sort_key == self.sort_key:
            flipped = SortOrder.DESC if self.sort_order == SortOrder.ASC else SortOrder.ASC
            return self.with_sort(sort_key, flipped)
        return self.with_sort(sort_key, DEFAULT_SORT_ORDER.get(sort_key, SortOrder.ASC))

    def with_page(self, page: int) -> "ViewParams":
        return replace(self, page=page)

    def with_page_size(self, page_size: int) -> "ViewParams":
        return replace(self, page_size=page_size)

    def clear_filters(self) -> "ViewParams":
        return replace(self, status=None, id_card=IdCardFilter.ANY, page=1)


@dataclass(frozen=True)
class ListPage:
    items: list[Member]
    total_count: int
    total_pages: int
    current_page: int
    # 1-based inclusive, for "Showing 21–23 of 23"; both 0 when empty
    window_start: int
    window_end: int

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


def _text_key(value: str | None) -> tuple[str, str, str]:
    """
    Collation key close to a locale compare: accents and case are ignored first,
    then accents break ties, then lowercase sorts before uppercase.
    """
    s = value or ""
    decomposed = unicodedata.normalize("NFKD", s)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), s.casefold(), s.swapcase())


def _instant_key(value: datetime | None) -> tuple[int, float]:
    if value is None:
        return (0, 0.0)
    return (1, value.timestamp())


_SORTERS: dict[str, Callable[[Member], object]] = {
    "name": lambda m: _text_key(m.name),
    "status": lambda m: _text_key(m.status),
    "created_at": lambda m: _instant_key(m.created_at),
    "id_card_created": lambda m: 1 if m.id_card_created else 0,
}


def _matches_id_card(member: Member, wanted: IdCardFilter) -> bool:
    if wanted == IdCardFilter.CREATED:
        return member.id_card_created is True
    if wanted == IdCardFilter.NOT_CREATED:
        return member.id_card_created is not True
    return True


def _matches_search(member: Member, term: str) -> bool:
    return any(term in (value or "").casefold() for value in (member.name, member.email, member.member_id))


def filter_members(items: Sequence[Member], params: ViewParams, config: ListConfig) -> list[Member]:
    """Steps 1-3: id-card scope/filter, status, then search."""
    result = list(items)

    id_card = config.id_card_scope
    if id_card is None and config.id_card_filter:
        id_card = params.id_card
    if id_card is not None and id_card != IdCardFilter.ANY:
        result = [m for m in result if _matches_id_card(m, id_card)]

    if config.status_filter and params.status:
        result = [m for m in result if (m.status or "") == params.status]

    term = params.search.strip().casefold() if config.searchable else ""
    if term:
        result = [m for m in result if _matches_search(m, term)]

    return result


def sort_members(items: Sequence[Member], params: ViewParams, config: ListConfig) -> list[Member]:
    """Stable sort; equal keys keep input order in both directions."""
    key = params.sort_key if params.sort_key in config.sort_keys else config.default_sort
    order = params.sort_order if params.sort_key in config.sort_keys else config.default_order
    return sorted(items, key=_SORTERS[key], reverse=SortOrder(order) == SortOrder.DESC)


def paginate(items: Sequence[Member], page: int, page_size: int) -> ListPage:
    page_size = max(1, int(page_size))
    total_count = len(items)
    total_pages = max(1, math.ceil(total_count / page_size))
    current = min(max(1, int(page)), total_pages)

    start = (current - 1) * page_size
    visible = list(items[start:start + page_size])
    if visible:
        window_start, window_end = start + 1, start + len(visible)
    else:
        window_start = window_end = 0

    return ListPage(
        items=visible,
        total_count=total_count,
        total_pages=total_pages,
        current_page=current,
        window_start=window_start,
        window_end=window_end,
    )


def build_page(items: Sequence[Member], params: ViewParams, config: ListConfig) -> ListPage:
    filtered = filter_members(items, params, config)
    ordered = sort_members(filtered, params, config)
    return paginate(ordered, params.page, params.page_size)
