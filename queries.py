"""
queries.py
Query cache on top of the gateway (st.cache_data).

Reads are cached per function + arguments; failures are never cached, so the
next rerun retries. Every mutation goes through CachedGateway, which clears the
cached reads it affects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

import streamlit as st

from api import Gateway
from exceptions import BackendError
from logs import get_logger
from models import (
    AccessLog,
    DashboardStats,
    Document,
    Member,
    MemberCreate,
    MemberUpdate,
    Payment,
    Vehicle,
)

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 300


@dataclass(frozen=True)
class QueryResult:
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def load(query: Callable[..., Any], *args: Any) -> QueryResult:
    """Run a read and turn a BackendError into an error state for the view."""
    try:
        return QueryResult(data=query(*args))
    except BackendError as exc:
        return QueryResult(error=exc.message)


# The leading underscore keeps the gateway out of the cache key; `identity`
# (the signed-in user) is part of it, so sessions never share rows.

@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _members(_gateway: Gateway, identity: str, search: str) -> list[Member]:
    return _gateway.list_members(search or None)


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _member(_gateway: Gateway, identity: str, member_id: str) -> Member | None:
    return _gateway.get_member(member_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _vehicles(_gateway: Gateway, identity: str, member_id: str) -> list[Vehicle]:
    return _gateway.list_vehicles(member_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _payments(_gateway: Gateway, identity: str, member_id: str) -> list[Payment]:
    return _gateway.list_payments(member_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _access_logs(_gateway: Gateway, identity: str, member_id: str) -> list[AccessLog]:
    return _gateway.list_access_logs(member_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _documents(_gateway: Gateway, identity: str, member_id: str) -> list[Document]:
    return _gateway.list_documents(member_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _dashboard(_gateway: Gateway, identity: str) -> DashboardStats:
    return _gateway.get_dashboard_stats()


def invalidate_members() -> None:
    _members.clear()
    _member.clear()
    _dashboard.clear()


def clear_all() -> None:
    for cached in (_members, _member, _vehicles, _payments, _access_logs, _documents, _dashboard):
        cached.clear()


class CachedGateway:
    """
    Gateway surface backed by the query cache.

    `identity` returns the key of whoever is signed in on this gateway's client;
    cached reads are only shared between callers with the same identity.
    """

    def __init__(self, gateway: Gateway, identity: Callable[[], str] = lambda: ""):
        self.gateway = gateway
        self.identity = identity

    # ---------- Reads ----------

    def list_members(self, search: str | None = None) -> list[Member]:
        return _members(self.gateway, self.identity(), (search or "").strip())

    def get_member(self, member_id: str) -> Member | None:
        return _member(self.gateway, self.identity(), member_id)

    def list_vehicles(self, member_id: str) -> list[Vehicle]:
        return _vehicles(self.gateway, self.identity(), member_id)

    def list_payments(self, member_id: str) -> list[Payment]:
        return _payments(self.gateway, self.identity(), member_id)

    def list_access_logs(self, member_id: str) -> list[AccessLog]:
        return _access_logs(self.gateway, self.identity(), member_id)

    def list_documents(self, member_id: str) -> list[Document]:
        return _documents(self.gateway, self.identity(), member_id)

    def get_dashboard_stats(self) -> DashboardStats:
        return _dashboard(self.gateway, self.identity())

    # ---------- Member mutations ----------

    def create_member(self, payload: MemberCreate) -> Member:
        member = self.gateway.create_member(payload)
        invalidate_members()
        return member

    def update_member(self, member_id: str, changes: MemberUpdate | Mapping[str, Any]) -> Member:
        member = self.gateway.update_member(member_id, changes)
        invalidate_members()
        return member

    def delete_member(self, member_id: str) -> None:
        self.gateway.delete_member(member_id)
        # dependents went with it
        clear_all()

    def issue_id_card(self, member_id: str) -> Member:
        member = self.gateway.issue_id_card(member_id)
        invalidate_members()
        logger.info("Issued ID card for member %s", member_id)
        return member

    # ---------- Dependent mutations ----------

    def create_vehicle(self, payload: Mapping[str, Any]) -> Vehicle:
        vehicle = self.gateway.create_vehicle(payload)
        _vehicles.clear()
        return vehicle

    def update_vehicle(self, vehicle_id: str, changes: Mapping[str, Any]) -> Vehicle:
        vehicle = self.gateway.update_vehicle(vehicle_id, changes)
        _vehicles.clear()
        return vehicle

    def delete_vehicle(self, vehicle_id: str) -> None:
        self.gateway.delete_vehicle(vehicle_id)
        _vehicles.clear()

    def create_payment(self, payload: Mapping[str, Any]) -> Payment:
        payment = self.gateway.create_payment(payload)
        _payments.clear()
        _dashboard.clear()
        return payment

    def update_payment(self, payment_id: str, changes: Mapping[str, Any]) -> Payment:
        payment = self.gateway.update_payment(payment_id, changes)
        _payments.clear()
        _dashboard.clear()
        return payment

    def delete_payment(self, payment_id: str) -> None:
        self.gateway.delete_payment(payment_id)
        _payments.clear()
        _dashboard.clear()

    def create_access_log(self, payload: Mapping[str, Any]) -> AccessLog:
        log = self.gateway.create_access_log(payload)
        _access_logs.clear()
        return log

    def update_access_log(self, log_id: str, changes: Mapping[str, Any]) -> AccessLog:
        log = self.gateway.update_access_log(log_id, changes)
        _access_logs.clear()
        return log

    def delete_access_log(self, log_id: str) -> None:
        self.gateway.delete_access_log(log_id)
        _access_logs.clear()

    def create_document(self, payload: Mapping[str, Any]) -> Document:
        document = self.gateway.create_document(payload)
        _documents.clear()
        return document

    def update_document(self, document_id: str, changes: Mapping[str, Any]) -> Document:
        document = self.gateway.update_document(document_id, changes)
        _documents.clear()
        return document

    def delete_document(self, document_id: str) -> None:
        self.gateway.delete_document(document_id)
        _documents.clear()
