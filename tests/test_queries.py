"""Tests for the query cache and its invalidation."""

from collections import Counter

import pytest

import queries
from exceptions import BackendError
from models import DashboardStats, MemberUpdate
from queries import CachedGateway, load


class CountingGateway:
    """Gateway double that counts backend round trips."""

    def __init__(self, members):
        self.members = {m.id: m for m in members}
        self.calls = Counter()
        self.fail = False

    def _hit(self, name):
        self.calls[name] += 1
        if self.fail:
            raise BackendError("backend down")

    def list_members(self, search=None):
        self._hit("list_members")
        return list(self.members.values())

    def get_member(self, member_id):
        self._hit("get_member")
        return self.members.get(member_id)

    def list_vehicles(self, member_id):
        self._hit("list_vehicles")
        return []

    def list_payments(self, member_id):
        self._hit("list_payments")
        return []

    def list_access_logs(self, member_id):
        self._hit("list_access_logs")
        return []

    def list_documents(self, member_id):
        self._hit("list_documents")
        return []

    def get_dashboard_stats(self):
        self._hit("get_dashboard_stats")
        return DashboardStats(len(self.members), len(self.members), 0, 0, 0.0, 0)

    def update_member(self, member_id, changes):
        self._hit("update_member")
        return self.members[member_id]

    def issue_id_card(self, member_id):
        self._hit("issue_id_card")
        return self.members[member_id]

    def delete_member(self, member_id):
        self._hit("delete_member")
        self.members.pop(member_id)

    def create_payment(self, payload):
        self._hit("create_payment")
        return payload

    def create_vehicle(self, payload):
        self._hit("create_vehicle")
        return payload


@pytest.fixture(autouse=True)
def empty_cache():
    queries.clear_all()
    yield
    queries.clear_all()


@pytest.fixture
def backend(make_member) -> CountingGateway:
    return CountingGateway([make_member(n) for n in range(1, 4)])


@pytest.fixture
def cached(backend) -> CachedGateway:
    return CachedGateway(backend)


class TestCaching:
    """Repeated reads are served from the cache."""

    def test_repeat_reads_hit_backend_once(self, cached, backend) -> None:
        first = cached.list_members()
        second = cached.list_members()

        assert first == second
        assert backend.calls["list_members"] == 1

    def test_search_is_part_of_the_key(self, cached, backend) -> None:
        cached.list_members("ann")
        cached.list_members(" ann ")
        cached.list_members("bob")

        assert backend.calls["list_members"] == 2

    def test_member_scoped_reads_are_keyed_by_member(self, cached, backend) -> None:
        cached.list_vehicles("uuid-1")
        cached.list_vehicles("uuid-1")
        cached.list_vehicles("uuid-2")

        assert backend.calls["list_vehicles"] == 2

    def test_failures_are_not_cached(self, cached, backend) -> None:
        backend.fail = True
        with pytest.raises(BackendError):
            cached.get_member("uuid-1")

        backend.fail = False
        assert cached.get_member("uuid-1").id == "uuid-1"
        assert backend.calls["get_member"] == 2


class TestSessionIsolation:
    """Cached reads are keyed by the signed-in identity."""

    def test_different_identities_never_share_rows(self, make_member) -> None:
        backend_a = CountingGateway([make_member(1, name="Only visible to A")])
        backend_b = CountingGateway([make_member(2, name="Only visible to B")])
        session_a = CachedGateway(backend_a, identity=lambda: "user-a")
        session_b = CachedGateway(backend_b, identity=lambda: "user-b")

        assert [m.name for m in session_a.list_members()] == ["Only visible to A"]
        assert [m.name for m in session_b.list_members()] == ["Only visible to B"]
        assert session_b.get_member("uuid-1") is None
        assert backend_b.calls["list_members"] == 1

    def test_same_identity_shares_the_cache(self, backend) -> None:
        first = CachedGateway(backend, identity=lambda: "user-a")
        second = CachedGateway(backend, identity=lambda: "user-a")

        first.get_dashboard_stats()
        second.get_dashboard_stats()

        assert backend.calls["get_dashboard_stats"] == 1

    def test_identity_is_read_on_every_call(self, backend) -> None:
        current = {"user": "user-a"}
        cached = CachedGateway(backend, identity=lambda: current["user"])

        cached.list_payments("uuid-1")
        current["user"] = "user-b"
        cached.list_payments("uuid-1")

        assert backend.calls["list_payments"] == 2


class TestInvalidation:
    """Mutations clear the reads they affect."""

    def test_member_update_refreshes_member_reads(self, cached, backend) -> None:
        cached.list_members()
        cached.get_member("uuid-1")
        cached.get_dashboard_stats()
        cached.list_vehicles("uuid-1")

        cached.update_member(
            "uuid-1",
            MemberUpdate(name="x", email="x@example.com", unit="1", building="B", member_type="Owner", status="Active"),
        )
        cached.list_members()
        cached.get_member("uuid-1")
        cached.get_dashboard_stats()
        cached.list_vehicles("uuid-1")

        assert backend.calls["list_members"] == 2
        assert backend.calls["get_member"] == 2
        assert backend.calls["get_dashboard_stats"] == 2
        assert backend.calls["list_vehicles"] == 1

    def test_issue_id_card_refreshes_lists(self, cached, backend) -> None:
        cached.list_members()
        cached.issue_id_card("uuid-2")
        cached.list_members()

        assert backend.calls["issue_id_card"] == 1
        assert backend.calls["list_members"] == 2

    def test_delete_member_clears_everything(self, cached, backend) -> None:
        cached.list_members()
        cached.list_payments("uuid-3")

        cached.delete_member("uuid-3")

        assert len(cached.list_members()) == 2
        cached.list_payments("uuid-3")
        assert backend.calls["list_payments"] == 2

    def test_payment_mutation_refreshes_revenue(self, cached, backend) -> None:
        cached.get_dashboard_stats()
        cached.list_members()

        cached.create_payment({"member_id": "uuid-1", "amount": 10})
        cached.get_dashboard_stats()
        cached.list_members()

        assert backend.calls["get_dashboard_stats"] == 2
        assert backend.calls["list_members"] == 1

    def test_vehicle_mutation_leaves_member_reads_cached(self, cached, backend) -> None:
        cached.get_member("uuid-1")
        cached.list_vehicles("uuid-1")

        cached.create_vehicle({"member_id": "uuid-1"})
        cached.get_member("uuid-1")
        cached.list_vehicles("uuid-1")

        assert backend.calls["get_member"] == 1
        assert backend.calls["list_vehicles"] == 2


class TestLoad:
    """Error state for views."""

    def test_success(self) -> None:
        result = load(lambda x: x * 2, 21)
        assert result.ok
        assert result.data == 42

    def test_backend_error_becomes_message(self, cached, backend) -> None:
        backend.fail = True

        result = load(cached.list_members)

        assert not result.ok
        assert result.data is None
        assert result.error == "backend down"
