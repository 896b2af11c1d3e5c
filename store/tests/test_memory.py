"""
Unit tests for the in-memory store.

Tests cover:
- Record creation, ids and primary-key conflicts
- Identity uniqueness in the auth provider
- Upserts keyed on a conflict column
- Filters, ordering, pagination and counts
- Outer and inner embeds
- Failure injection
"""

import pytest
from datetime import datetime, timedelta, timezone

from store import Embed, FilterOp, InMemoryStore, Order, Query, StoreError
from store.memory import AUTH_COLLECTION


BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestInMemoryWrites:
    """Tests for create / upsert / credentials."""

    @pytest.mark.asyncio
    async def test_create_assigns_id(self):
        store = InMemoryStore()

        record_id = await store.create_record("accounts", {"account_type": "client", "balance": 0})

        rows = store.rows("accounts")
        assert rows[0]["id"] == record_id
        assert store.writes == ["accounts"]

    @pytest.mark.asyncio
    async def test_duplicate_primary_key_rejected(self):
        store = InMemoryStore()
        await store.create_record("users", {"id": "u-1", "name": "Ana"})

        with pytest.raises(StoreError) as exc_info:
            await store.create_record("users", {"id": "u-1", "name": "Otra"})

        assert exc_info.value.code == "23505"
        assert len(store.rows("users")) == 1

    @pytest.mark.asyncio
    async def test_credential_emails_are_unique(self):
        store = InMemoryStore()
        await store.create_credential("ana@example.com", "secret123", True, {"role": "client"})

        with pytest.raises(StoreError, match="User already registered"):
            await store.create_credential("ANA@example.com ", "secret123", True, {"role": "client"})

        identities = store.rows(AUTH_COLLECTION)
        assert len(identities) == 1
        assert identities[0]["email_confirmed"] is True
        assert identities[0]["user_metadata"] == {"role": "client"}

    @pytest.mark.asyncio
    async def test_short_password_rejected(self):
        store = InMemoryStore()

        with pytest.raises(StoreError) as exc_info:
            await store.create_credential("ana@example.com", "123", True, {})

        assert exc_info.value.code == "weak_password"
        assert store.writes == []

    @pytest.mark.asyncio
    async def test_upsert_updates_existing_row(self):
        store = InMemoryStore()
        await store.create_record("user_preferences", {"user_id": "u-1", "has_seen_tour": False})

        await store.upsert_record("user_preferences", {"user_id": "u-1", "has_seen_tour": True}, on_conflict="user_id")
        await store.upsert_record("user_preferences", {"user_id": "u-2", "has_seen_tour": True}, on_conflict="user_id")

        rows = {row["user_id"]: row for row in store.rows("user_preferences")}
        assert rows["u-1"]["has_seen_tour"] is True
        assert rows["u-2"]["has_seen_tour"] is True
        assert len(rows) == 2

    @pytest.mark.asyncio
    async def test_fail_on_collection(self):
        store = InMemoryStore()
        store.fail_on("accounts", "insert rejected", code="42501")

        with pytest.raises(StoreError) as exc_info:
            await store.create_record("accounts", {"balance": 0})

        assert exc_info.value.message == "insert rejected"
        assert exc_info.value.collection == "accounts"

        store.clear_failures()
        await store.create_record("accounts", {"balance": 0})
        assert store.writes == ["accounts"]


class TestInMemoryQueries:
    """Tests for query_records."""

    @pytest.fixture
    def store(self):
        store = InMemoryStore()
        store.seed("accounts", [
            {"id": "acc-1", "user_id": "u-1", "account_type": "restaurant"},
            {"id": "acc-2", "user_id": "u-2", "account_type": "client"},
        ])
        store.seed("users", [{"id": "u-1", "name": "Ana"}, {"id": "u-2", "name": "Luis"}])
        store.seed("entries", [
            {"id": f"e-{i}", "account_id": "acc-1" if i < 3 else "acc-2", "created_at": BASE_TIME + timedelta(minutes=i)}
            for i in range(5)
        ])
        return store

    @pytest.mark.asyncio
    async def test_order_offset_limit_count(self, store):
        query = Query("entries", order=Order("created_at", descending=True), offset=1, limit=2, count=True)

        result = await store.query_records(query)

        assert [row["id"] for row in result.rows] == ["e-3", "e-2"]
        assert result.total_count == 5

    @pytest.mark.asyncio
    async def test_count_only_when_requested(self, store):
        result = await store.query_records(Query("entries"))

        assert result.total_count is None
        assert len(result.rows) == 5

    @pytest.mark.asyncio
    async def test_iso_string_bounds_compare_with_datetimes(self, store):
        query = Query("entries").where("created_at", FilterOp.GTE, (BASE_TIME + timedelta(minutes=3)).isoformat())

        result = await store.query_records(query)

        assert [row["id"] for row in result.rows] == ["e-3", "e-4"]

    @pytest.mark.asyncio
    async def test_naive_bounds_are_utc(self, store):
        query = Query("entries").where("created_at", FilterOp.LTE, datetime(2025, 1, 1, 0, 1))

        result = await store.query_records(query)

        assert [row["id"] for row in result.rows] == ["e-0", "e-1"]

    @pytest.mark.asyncio
    async def test_projection(self, store):
        result = await store.query_records(Query("accounts", fields=("account_type",)))

        assert result.rows == [{"account_type": "restaurant"}, {"account_type": "client"}]

    @pytest.mark.asyncio
    async def test_outer_embed_nulls_filtered_children(self, store):
        embed = Embed("account", "accounts", local_key="account_id", foreign_key="id", fields=("account_type",))
        query = Query("entries", embeds=(embed,)).where("account.account_type", FilterOp.EQ, "client")

        result = await store.query_records(query)

        assert len(result.rows) == 5
        assert [row["account"] for row in result.rows[:3]] == [None, None, None]
        assert result.rows[3]["account"] == {"account_type": "client"}

    @pytest.mark.asyncio
    async def test_inner_embed_drops_parents(self, store):
        embed = Embed("account", "accounts", local_key="account_id", foreign_key="id", inner=True)
        query = Query("entries", embeds=(embed,), count=True).where("account.account_type", FilterOp.EQ, "client")

        result = await store.query_records(query)

        assert [row["id"] for row in result.rows] == ["e-3", "e-4"]
        assert result.total_count == 2

    @pytest.mark.asyncio
    async def test_nested_embeds(self, store):
        embed = Embed(
            "account", "accounts", local_key="account_id", foreign_key="id", fields=("account_type",),
            embeds=(Embed("user", "users", local_key="user_id", foreign_key="id", fields=("name",)),),
        )

        result = await store.query_records(Query("entries", embeds=(embed,), limit=1))

        assert result.rows[0]["account"] == {"account_type": "restaurant", "user": {"name": "Ana"}}

    @pytest.mark.asyncio
    async def test_query_failure(self, store):
        store.fail_on("entries")

        with pytest.raises(StoreError):
            await store.query_records(Query("entries"))
