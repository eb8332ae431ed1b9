"""
utils.py
Form validation, display formatting, exports.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Mapping, Sequence

import pandas as pd
from email_validator import EmailNotValidError, validate_email

from exceptions import ValidationError
from models import (
    DEFAULT_PHONE_COUNTRY_CODE,
    MEMBER_STATUSES,
    MEMBER_TYPES,
    PHONE_COUNTRY_CODES,
    PLACEHOLDER,
    Member,
    MemberCreate,
    MemberUpdate,
)


# ---------- Member form ----------

def _clean(form: Mapping[str, Any], key: str) -> str:
    value = form.get(key)
    return str(value).strip() if value is not None else ""


def validate_member_form(form: Mapping[str, Any]) -> dict[str, str]:
    """
    Check a member create/edit form. Returns {field: message} with the first
    violated rule per field; an empty dict means the form is valid.
    Values are trimmed before checking.
    """
    errors: dict[str, str] = {}

    if not _clean(form, "name"):
        errors["name"] = "Name is required"

    email = _clean(form, "email")
    if not email:
        errors["email"] = "Email is required"
    else:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            errors["email"] = "Enter a valid email"

    if not _clean(form, "unit"):
        errors["unit"] = "Unit is required"
    if not _clean(form, "building"):
        errors["building"] = "Building is required"

    if _clean(form, "member_type") not in MEMBER_TYPES:
        errors["member_type"] = "Member type must be Owner or Tenant"
    if _clean(form, "status") not in MEMBER_STATUSES:
        errors["status"] = "Status must be Active or Inactive"

    return errors


def _editable_fields(form: Mapping[str, Any]) -> dict[str, Any]:
    errors = validate_member_form(form)
    if errors:
        raise ValidationError(errors)
    return {
        "name": _clean(form, "name"),
        "email": _clean(form, "email"),
        "unit": _clean(form, "unit"),
        "building": _clean(form, "building"),
        "member_type": _clean(form, "member_type"),
        "status": _clean(form, "status"),
        "phone": _clean(form, "phone") or None,
        "phone_country_code": _clean(form, "phone_country_code") or None,
    }


def prepare_member_create(form: Mapping[str, Any]) -> MemberCreate:
    """Validated insert payload; optional profile fields are explicit nulls."""
    return MemberCreate(**_editable_fields(form))


def prepare_member_update(form: Mapping[str, Any]) -> MemberUpdate:
    """Validated update payload with only the fields the edit form owns."""
    return MemberUpdate(**_editable_fields(form))


def member_form_defaults(member: Member | None = None) -> dict[str, Any]:
    if member is None:
        return {
            "name": "",
            "email": "",
            "phone_country_code": DEFAULT_PHONE_COUNTRY_CODE,
            "phone": "",
            "unit": "",
            "building": "",
            "member_type": MEMBER_TYPES[0],
            "status": MEMBER_STATUSES[0],
        }
    return {
        "name": member.name,
        "email": member.email,
        "phone_country_code": member.phone_country_code or DEFAULT_PHONE_COUNTRY_CODE,
        "phone": member.phone or "",
        "unit": member.unit,
        "building": member.building,
        "member_type": member.member_type,
        "status": member.status,
    }


# ---------- Display ----------

def initials(name: str | None) -> str:
    """First letter of the first two name tokens, uppercased."""
    tokens = (name or "").split()
    if not tokens:
        return PLACEHOLDER
    return "".join(t[0] for t in tokens[:2]).upper()


def emergency_contact_label(member: Member) -> str:
    name = (member.emergency_contact_name or "").strip()
    if not name:
        return PLACEHOLDER
    relationship = (member.emergency_contact_relationship or "").strip()
    return f"{name} ({relationship})" if relationship else name


def format_phone_display(country_code: str | None, phone: str | None) -> str:
    if not (phone or "").strip():
        return PLACEHOLDER
    known = next((c for c in PHONE_COUNTRY_CODES if c[0] == country_code), None)
    if known:
        prefix = f"{known[2]} {known[0]} "
    elif country_code:
        prefix = f"{country_code} "
    else:
        prefix = ""
    return f"{prefix}{phone.strip()}"


def format_date(value: datetime | None) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{value:%b} {value.day}, {value.year}"


def to_local(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert to `tz` (local when None); naive backend timestamps are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def format_relative_time(
    value: datetime | None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> str:
    """
    Short label for a past instant:
    under a minute -> "Just now", under an hour -> "N min ago",
    under a day -> "Yesterday, HH:MM", under a week -> "<Weekday>, HH:MM",
    otherwise the date.

    Clock times and dates are shown in `tz`, the local timezone when None.
    """
    if value is None:
        return PLACEHOLDER
    value = to_local(value, tz)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = (now - value).total_seconds()
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{int(seconds // 60)} min ago"
    if seconds < 86400:
        return f"Yesterday, {value:%H:%M}"
    if seconds < 7 * 86400:
        return f"{value:%A}, {value:%H:%M}"
    return format_date(value)


# ---------- Exports ----------

def _member_export_row(member: Member, index: int, tz: tzinfo | None = None) -> dict[str, Any]:
    return {
        "No": index + 1,
        "Member ID": member.member_id or "",
        "Name": member.name or "",
        "Email": member.email or "",
        "Mobile": format_phone_display(member.phone_country_code, member.phone),
        "Unit": member.unit or "",
        "Building": member.building or "",
        "Type": member.member_type or "",
        "Status": member.status or "",
        "Last Access": to_local(member.last_access, tz).strftime("%Y-%m-%d %H:%M") if member.last_access else "",
        "Created": member.created_at.date().isoformat() if member.created_at else "",
        "ID Card Created": "Yes" if member.id_card_created else "No",
    }


def members_to_dataframe(members: Sequence[Member], tz: tzinfo | None = None) -> pd.DataFrame:
    return pd.DataFrame([_member_export_row(m, i, tz) for i, m in enumerate(members)])


def members_to_csv_bytes(members: Sequence[Member]) -> bytes:
    # BOM so spreadsheet apps detect UTF-8
    return members_to_dataframe(members).to_csv(index=False).encode("utf-8-sig")
