"""
models.py
Domain records (members and their dependents), form payload variants, constants.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from datetime import date, datetime
from typing import Any, Mapping

MEMBER_TYPES = ("Owner", "Tenant")
MEMBER_STATUSES = ("Active", "Inactive")
PAYMENT_STATUSES = ("Pending", "Completed", "Failed", "Refunded")
ACCESS_STATUSES = ("Granted", "Denied")

# (code, country, flag); the first entry is the form default
PHONE_COUNTRY_CODES = (
    ("+91", "India", "🇮🇳"),
    ("+1", "United States", "🇺🇸"),
    ("+44", "United Kingdom", "🇬🇧"),
    ("+61", "Australia", "🇦🇺"),
    ("+86", "China", "🇨🇳"),
    ("+81", "Japan", "🇯🇵"),
    ("+49", "Germany", "🇩🇪"),
    ("+33", "France", "🇫🇷"),
    ("+55", "Brazil", "🇧🇷"),
    ("+1", "Canada", "🇨🇦"),
)
DEFAULT_PHONE_COUNTRY_CODE = "+91"

# Shown wherever a display value is missing
PLACEHOLDER = "—"


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _from_row(cls, row: Mapping[str, Any], timestamps: tuple = (), dates: tuple = ()):
    """
    Build a record from a backend row. Columns the record does not declare are
    ignored; timestamp/date columns are parsed from ISO strings.
    """
    names = {f.name for f in fields(cls)}
    values = {k: v for k, v in row.items() if k in names}
    for key in timestamps:
        if key in values:
            values[key] = parse_timestamp(values[key])
    for key in dates:
        if key in values:
            values[key] = parse_date(values[key])
    return cls(**values)


@dataclass(frozen=True)
class Member:
    id: str
    member_id: str
    name: str
    email: str
    unit: str
    building: str
    member_type: str  # 'Owner' or 'Tenant'
    status: str  # 'Active' or 'Inactive'
    id_card_created: bool = False
    phone: str | None = None
    phone_country_code: str | None = None
    date_of_birth: date | None = None
    occupation: str | None = None
    residential_address: str | None = None
    mailing_address: str | None = None
    move_in_date: date | None = None
    move_out_date: date | None = None
    emergency_contact_name: str | None = None
    emergency_contact_relationship: str | None = None
    emergency_contact_phone: str | None = None
    emergency_contact_email: str | None = None
    last_access: datetime | None = None
    last_access_location: str | None = None
    avatar_url: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Member":
        member = _from_row(
            cls,
            row,
            timestamps=("last_access", "created_at", "updated_at"),
            dates=("date_of_birth", "move_in_date", "move_out_date"),
        )
        # NULL in the column means "not issued"
        if member.id_card_created is None:
            return replace(member, id_card_created=False)
        return member


@dataclass(frozen=True)
class Vehicle:
    id: str
    member_id: str
    vehicle_name: str
    vehicle_type: str
    license_plate: str
    make: str | None = None
    model: str | None = None
    year: int | None = None
    color: str | None = None
    icon: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Vehicle":
        return _from_row(cls, row, timestamps=("created_at", "updated_at"))


@dataclass(frozen=True)
class Payment:
    id: str
    member_id: str
    amount: float
    payment_type: str
    status: str  # Pending/Completed/Failed/Refunded
    payment_method: str | None = None
    due_date: date | None = None
    paid_date: date | None = None
    description: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Payment":
        payment = _from_row(
            cls,
            row,
            timestamps=("created_at", "updated_at"),
            dates=("due_date", "paid_date"),
        )
        # numeric columns come back as strings or numbers depending on precision
        return replace(payment, amount=float(payment.amount or 0))


@dataclass(frozen=True)
class AccessLog:
    id: str
    member_id: str
    location: str
    access_method: str
    status: str  # Granted/Denied
    accessed_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AccessLog":
        return _from_row(cls, row, timestamps=("accessed_at", "created_at"))


@dataclass(frozen=True)
class Document:
    id: str
    member_id: str
    document_name: str
    document_type: str
    file_url: str
    file_size: int | None = None
    mime_type: str | None = None
    uploaded_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Document":
        return _from_row(cls, row, timestamps=("uploaded_at", "expires_at", "created_at"))


@dataclass(frozen=True)
class DashboardStats:
    total_members: int
    active_count: int
    inactive_count: int
    id_created_count: int
    total_revenue: float
    completed_payments_count: int

    @property
    def id_not_created_count(self) -> int:
        return max(0, self.total_members - self.id_created_count)


# ---------- Form payloads ----------

# Optional profile fields a new member starts without
MEMBER_PROFILE_FIELDS = (
    "date_of_birth",
    "occupation",
    "residential_address",
    "mailing_address",
    "move_in_date",
    "move_out_date",
    "emergency_contact_name",
    "emergency_contact_relationship",
    "emergency_contact_phone",
    "emergency_contact_email",
    "last_access",
    "last_access_location",
    "avatar_url",
    "notes",
)


@dataclass(frozen=True)
class MemberCreate:
    """Insert payload. Every optional profile field is sent as an explicit null."""

    name: str
    email: str
    unit: str
    building: str
    member_type: str
    status: str
    phone: str | None = None
    phone_country_code: str | None = None
    date_of_birth: str | None = None
    occupation: str | None = None
    residential_address: str | None = None
    mailing_address: str | None = None
    move_in_date: str | None = None
    move_out_date: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_relationship: str | None = None
    emergency_contact_phone: str | None = None
    emergency_contact_email: str | None = None
    last_access: str | None = None
    last_access_location: str | None = None
    avatar_url: str | None = None
    notes: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MemberUpdate:
    """Update payload: only the fields the edit form exposes."""

    name: str
    email: str
    unit: str
    building: str
    member_type: str
    status: str
    phone: str | None = None
    phone_country_code: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)
