"""
member_profile.py
Member profile aggregation: one member plus its vehicles, payments, access logs
and documents, each sub-collection loaded and reported independently.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable, Protocol

import utils
from exceptions import BackendError
from logs import get_logger
from models import PLACEHOLDER, AccessLog, Document, Member, Payment, Vehicle

logger = get_logger(__name__)


class LoadStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ProfileState(str, Enum):
    READY = "ready"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ProfileTab(str, Enum):
    OVERVIEW = "Overview"
    PAYMENTS = "Payments"
    DOCUMENTS = "Documents"


class ProfileSource(Protocol):
    def get_member(self, member_id: str) -> Member | None: ...
    def list_vehicles(self, member_id: str) -> list[Vehicle]: ...
    def list_payments(self, member_id: str) -> list[Payment]: ...
    def list_access_logs(self, member_id: str) -> list[AccessLog]: ...
    def list_documents(self, member_id: str) -> list[Document]: ...


@dataclass(frozen=True)
class SubCollection:
    status: LoadStatus = LoadStatus.LOADING
    items: tuple = ()
    error: str | None = None

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class MemberProfile:
    member_id: str
    state: ProfileState
    member: Member | None = None
    error: str | None = None
    vehicles: SubCollection = field(default_factory=SubCollection)
    payments: SubCollection = field(default_factory=SubCollection)
    access_logs: SubCollection = field(default_factory=SubCollection)
    documents: SubCollection = field(default_factory=SubCollection)

    @property
    def initials(self) -> str:
        return utils.initials(self.member.name if self.member else None)

    @property
    def emergency_contact(self) -> str:
        return utils.emergency_contact_label(self.member) if self.member else PLACEHOLDER

    @property
    def last_access(self) -> datetime | None:
        """Newest access-log entry, falling back to the member's last_access column."""
        stamps = [log.accessed_at for log in self.access_logs.items if log.accessed_at]
        if stamps:
            return max(stamps)
        return self.member.last_access if self.member else None

    def last_access_label(self, now: datetime | None = None, tz: tzinfo | None = None) -> str:
        return utils.format_relative_time(self.last_access, now=now, tz=tz)

    @property
    def completed_payments_total(self) -> float:
        return sum(p.amount for p in self.payments.items if p.status == "Completed")

    def tab_collections(self, tab: ProfileTab) -> tuple[tuple[str, SubCollection], ...]:
        """(attribute name, collection) pairs shown on a tab, in display order."""
        return tuple((name, getattr(self, name)) for name in TAB_SECTIONS[tab])


# sub-collections shown on each profile tab
TAB_SECTIONS = {
    ProfileTab.OVERVIEW: ("vehicles", "access_logs"),
    ProfileTab.PAYMENTS: ("payments",),
    ProfileTab.DOCUMENTS: ("documents",),
}

# profile attribute -> source method
SUB_COLLECTIONS = {
    "vehicles": "list_vehicles",
    "payments": "list_payments",
    "access_logs": "list_access_logs",
    "documents": "list_documents",
}


class ProfileLoader:
    """
    Loads a MemberProfile from a ProfileSource (the gateway, or its cached wrapper).

    The member record is fetched first. A missing member or a failed member fetch
    ends the load there; otherwise the four sub-collections are requested
    concurrently and each settles on its own.
    """

    def __init__(self, source: ProfileSource, max_workers: int = 4):
        self.source = source
        self.max_workers = max_workers

    def load(
        self,
        member_id: str,
        on_update: Callable[[MemberProfile], None] | None = None,
    ) -> MemberProfile:
        try:
            member = self.source.get_member(member_id)
        except BackendError as exc:
            logger.warning("Profile %s: member fetch failed: %s", member_id, exc.message)
            return MemberProfile(member_id=member_id, state=ProfileState.FAILED, error=exc.message)

        if member is None:
            return MemberProfile(member_id=member_id, state=ProfileState.NOT_FOUND)

        profile = MemberProfile(member_id=member_id, state=ProfileState.READY, member=member)
        if on_update:
            on_update(profile)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(getattr(self.source, method), member_id): attr
                for attr, method in SUB_COLLECTIONS.items()
            }
            for future in as_completed(futures):
                attr = futures[future]
                try:
                    settled = SubCollection(status=LoadStatus.READY, items=tuple(future.result()))
                except BackendError as exc:
                    logger.warning("Profile %s: %s failed: %s", member_id, attr, exc.message)
                    settled = SubCollection(status=LoadStatus.ERROR, error=exc.message)
                profile = replace(profile, **{attr: settled})
                if on_update:
                    on_update(profile)

        return profile
