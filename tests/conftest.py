"""Pytest configuration, fixtures and in-memory fakes of the backend client."""

from datetime import datetime, timedelta, timezone

import pytest

from models import Member


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records the PostgREST builder calls and answers from in-memory tables."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None

    def select(self, columns="*"):
        self.calls.append(("select", columns))
        return self

    def eq(self, column, value):
        self.calls.append(("eq", column, value))
        self.filters.append((column, value))
        return self

    def or_(self, expression):
        self.calls.append(("or_", expression))
        return self

    def order(self, column, desc=False):
        self.calls.append(("order", column, desc))
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.calls.append(("limit", count))
        self.row_limit = count
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, row):
        self.op, self.payload = "update", row
        return self

    def delete(self):
        self.op = "delete"
        return self

    def execute(self):
        self.client.executed.append(self)
        if self.client.error is not None:
            raise self.client.error

        table = self.client.tables.setdefault(self.table, [])
        matched = [r for r in table if all(r.get(c) == v for c, v in self.filters)]

        if self.op == "insert":
            row = {"id": f"{self.table}-{len(table) + 1}", **self.payload}
            row.setdefault("created_at", "2024-05-01T10:00:00+00:00")
            if self.table == "members":
                row.setdefault("member_id", f"M-{len(table) + 1:03d}")
            table.append(row)
            return FakeResponse([dict(row)])
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])
        if self.op == "delete":
            for row in matched:
                table.remove(row)
            return FakeResponse([dict(r) for r in matched])

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        if self.row_limit is not None:
            matched = matched[: self.row_limit]
        return FakeResponse([dict(r) for r in matched])


class FakeClient:
    def __init__(self, tables=None):
        self.tables = tables or {}
        self.executed = []
        self.error = None

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_member(base_time):
    """Factory for members; the n-th member is created n hours after base_time."""

    def _make(n: int, name: str | None = None, **overrides) -> Member:
        values = dict(
            id=f"uuid-{n}",
            member_id=f"M-{n:03d}",
            name=name or f"Resident {n:02d}",
            email=f"resident{n}@example.com",
            unit=f"{n}A",
            building="Tower 1",
            member_type="Owner",
            status="Active",
            id_card_created=False,
            created_at=base_time + timedelta(hours=n),
        )
        values.update(overrides)
        return Member(**values)

    return _make


@pytest.fixture
def members(make_member) -> list[Member]:
    """23 members, created in increasing order."""
    return [make_member(n) for n in range(1, 24)]
