"""
api.py
Remote data gateway: typed read/write functions per entity on top of the backend client.
Rows come back as model records; failures raise BackendError; a missing single
record is None, not an error.
"""

from __future__ import annotations

from typing import Any, Mapping

import db
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

MEMBERS = "members"
VEHICLES = "vehicles"
PAYMENTS = "payments"
ACCESS_LOGS = "access_logs"
DOCUMENTS = "documents"

# table -> (record type, newest-first ordering column)
_DEPENDENTS = {
    VEHICLES: (Vehicle, "created_at"),
    PAYMENTS: (Payment, "created_at"),
    ACCESS_LOGS: (AccessLog, "accessed_at"),
    DOCUMENTS: (Document, "uploaded_at"),
}


def _quote(value: str) -> str:
    # PostgREST filter values with reserved characters (, . : ( ) ") must be quoted
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def member_search_filter(search: str) -> str:
    """`or` filter matching name, email or member_id case-insensitively."""
    pattern = _quote(f"%{search.strip()}%")
    return ",".join(f"{col}.ilike.{pattern}" for col in ("name", "email", "member_id"))


def _row(payload: MemberCreate | MemberUpdate | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(payload, (MemberCreate, MemberUpdate)):
        return payload.to_row()
    return dict(payload)


class Gateway:
    def __init__(self, client):
        self.client = client

    def _table(self, name: str):
        return self.client.table(name)

    # ---------- Members ----------

    def list_members(self, search: str | None = None) -> list[Member]:
        q = self._table(MEMBERS).select("*").order("member_id", desc=False)
        if search and search.strip():
            q = q.or_(member_search_filter(search))
        return [Member.from_row(r) for r in db.fetch_all(q)]

    def get_member(self, member_id: str) -> Member | None:
        row = db.fetch_one(self._table(MEMBERS).select("*").eq("id", member_id))
        return Member.from_row(row) if row else None

    def create_member(self, payload: MemberCreate) -> Member:
        row = db.require_one(self._table(MEMBERS).insert(_row(payload)), "Member insert")
        member = Member.from_row(row)
        logger.info("Created member %s (%s)", member.member_id, member.id)
        return member

    def update_member(self, member_id: str, changes: MemberUpdate | Mapping[str, Any]) -> Member:
        q = self._table(MEMBERS).update(_row(changes)).eq("id", member_id)
        return Member.from_row(db.require_one(q, "Member update"))

    def delete_member(self, member_id: str) -> None:
        # dependents are removed by the backend's ON DELETE CASCADE
        db.execute(self._table(MEMBERS).delete().eq("id", member_id))
        logger.info("Deleted member %s", member_id)

    def issue_id_card(self, member_id: str) -> Member:
        return self.update_member(member_id, {"id_card_created": True})

    # ---------- Dependents (scoped by member) ----------

    def _list_for_member(self, table: str, member_id: str) -> list:
        record, order_by = _DEPENDENTS[table]
        q = self._table(table).select("*").eq("member_id", member_id).order(order_by, desc=True)
        return [record.from_row(r) for r in db.fetch_all(q)]

    def _create(self, table: str, payload: Mapping[str, Any]):
        record, _ = _DEPENDENTS[table]
        return record.from_row(db.require_one(self._table(table).insert(dict(payload)), f"{table} insert"))

    def _update(self, table: str, record_id: str, changes: Mapping[str, Any]):
        record, _ = _DEPENDENTS[table]
        q = self._table(table).update(dict(changes)).eq("id", record_id)
        return record.from_row(db.require_one(q, f"{table} update"))

    def _delete(self, table: str, record_id: str) -> None:
        db.execute(self._table(table).delete().eq("id", record_id))

    def list_vehicles(self, member_id: str) -> list[Vehicle]:
        return self._list_for_member(VEHICLES, member_id)

    def create_vehicle(self, payload: Mapping[str, Any]) -> Vehicle:
        return self._create(VEHICLES, payload)

    def update_vehicle(self, vehicle_id: str, changes: Mapping[str, Any]) -> Vehicle:
        return self._update(VEHICLES, vehicle_id, changes)

    def delete_vehicle(self, vehicle_id: str) -> None:
        self._delete(VEHICLES, vehicle_id)

    def list_payments(self, member_id: str) -> list[Payment]:
        return self._list_for_member(PAYMENTS, member_id)

    def create_payment(self, payload: Mapping[str, Any]) -> Payment:
        return self._create(PAYMENTS, payload)

    def update_payment(self, payment_id: str, changes: Mapping[str, Any]) -> Payment:
        return self._update(PAYMENTS, payment_id, changes)

    def delete_payment(self, payment_id: str) -> None:
        self._delete(PAYMENTS, payment_id)

    def list_access_logs(self, member_id: str) -> list[AccessLog]:
        return self._list_for_member(ACCESS_LOGS, member_id)

    def create_access_log(self, payload: Mapping[str, Any]) -> AccessLog:
        return self._create(ACCESS_LOGS, payload)

    def update_access_log(self, log_id: str, changes: Mapping[str, Any]) -> AccessLog:
        return self._update(ACCESS_LOGS, log_id, changes)

    def delete_access_log(self, log_id: str) -> None:
        self._delete(ACCESS_LOGS, log_id)

    def list_documents(self, member_id: str) -> list[Document]:
        return self._list_for_member(DOCUMENTS, member_id)

    def create_document(self, payload: Mapping[str, Any]) -> Document:
        return self._create(DOCUMENTS, payload)

    def update_document(self, document_id: str, changes: Mapping[str, Any]) -> Document:
        return self._update(DOCUMENTS, document_id, changes)

    def delete_document(self, document_id: str) -> None:
        self._delete(DOCUMENTS, document_id)

    # ---------- Dashboard ----------

    def get_dashboard_stats(self) -> DashboardStats:
        members = db.fetch_all(self._table(MEMBERS).select("id, status, id_card_created"))
        payments = db.fetch_all(self._table(PAYMENTS).select("amount").eq("status", "Completed"))
        return DashboardStats(
            total_members=len(members),
            active_count=sum(1 for m in members if m.get("status") == "Active"),
            inactive_count=sum(1 for m in members if m.get("status") == "Inactive"),
            id_created_count=sum(1 for m in members if m.get("id_card_created") is True),
            total_revenue=sum(float(p.get("amount") or 0) for p in payments),
            completed_payments_count=len(payments),
        )
