"""
Tests for snapshot persistence.

Covers the snapshot codec (including migration of unversioned
snapshots) and the local JSON file backend.
"""

import json
import pytest
from datetime import date
from decimal import Decimal

from src.ledger import Ledger
from src.models.finance import SCHEMA_VERSION, AccountType, TransactionType
from src.services.storage import (
    InMemorySnapshotStorage,
    JsonFileSnapshotStorage,
    SnapshotVersionError,
    StorageError,
    dump_state,
    load_state,
)


def _populated_ledger() -> Ledger:
    ledger = Ledger()
    card = ledger.add_account("Visa", AccountType.CREDIT, "USD", limit=Decimal("750.00"))
    ledger.add_transaction(
        amount=Decimal("45.90"),
        account_id=card.id,
        category_id="groceries",
        date=date(2024, 3, 1),
        type=TransactionType.EXPENSE,
        currency_code="USD",
        notes="Weekly shop",
    )
    ledger.toggle_dark_mode()
    return ledger


V0_SNAPSHOT = {
    "transactions": [
        {
            "id": "t1",
            "amount": 45.9,
            "accountId": "cash",
            "categoryId": "groceries",
            "date": "2024-03-01T10:15:00.000Z",
            "type": "expense",
            "currencyCode": "EUR",
        },
    ],
    "accounts": [
        {
            "id": "cash",
            "name": "Cash",
            "type": "cash",
            "balance": 0.30000000000000004,
            "currencyCode": "EUR",
        },
    ],
    "targets": [
        {
            "id": "g1",
            "name": "Bike",
            "targetAmount": 500,
            "currentAmount": 100.1,
            "deadline": "2024-12-31",
            "currencyCode": "EUR",
        },
    ],
    "budgets": [],
    "defaultCurrency": {"code": "EUR", "name": "Euro", "symbol": "€"},
    "darkMode": True,
}


class TestSnapshotCodec:
    """Tests for dump_state / load_state."""

    def test_round_trip(self):
        """Test a populated state survives encode and decode."""
        state = _populated_ledger().state
        restored = load_state(json.loads(json.dumps(dump_state(state))))
        assert restored.model_dump() == state.model_dump()

    def test_dump_is_versioned(self):
        """Test every snapshot carries the schema version."""
        assert dump_state(Ledger().state)["schema_version"] == SCHEMA_VERSION

    def test_money_stored_as_strings(self):
        """Test amounts are not written as floats."""
        data = dump_state(_populated_ledger().state)
        assert data["transactions"][0]["amount"] == "45.90"

    def test_migrate_unversioned_snapshot(self):
        """Test a camelCase float snapshot is upgraded on load."""
        state = load_state(json.loads(json.dumps(V0_SNAPSHOT)))

        assert state.schema_version == SCHEMA_VERSION
        transaction = state.transactions[0]
        assert transaction.amount == Decimal("45.90")
        assert transaction.account_id == "cash"
        assert transaction.date == date(2024, 3, 1)
        assert state.accounts[0].balance == Decimal("0.30")
        assert state.targets[0].current_amount == Decimal("100.10")
        assert state.default_currency.code == "EUR"
        assert state.dark_mode is True
        # Categories missing from the old snapshot fall back to defaults
        assert len(state.categories) == 12

    def test_migrate_wrapped_browser_snapshot(self):
        """Test the {"state": ..., "version": 0} wrapper is unpacked."""
        wrapped = {"state": json.loads(json.dumps(V0_SNAPSHOT)), "version": 0}

        state = load_state(wrapped)

        assert len(state.transactions) == 1
        assert state.transactions[0].amount == Decimal("45.90")
        assert state.dark_mode is True

    def test_unversioned_snapshot_without_ledger_data(self):
        """Test an unrecognised blob is an error, not an empty ledger."""
        with pytest.raises(StorageError, match="no ledger data"):
            load_state({"payload": {"transactions": []}, "version": 0})

    def test_newer_version_rejected(self):
        """Test snapshots from a newer schema are refused."""
        with pytest.raises(SnapshotVersionError) as exc_info:
            load_state({"schema_version": SCHEMA_VERSION + 1})
        assert exc_info.value.found == SCHEMA_VERSION + 1

    def test_invalid_version(self):
        """Test a non-integer version is a storage error."""
        with pytest.raises(StorageError):
            load_state({"schema_version": "one"})

    def test_corrupt_snapshot(self):
        """Test invalid entities surface as StorageError."""
        with pytest.raises(StorageError, match="corrupt"):
            load_state({"schema_version": SCHEMA_VERSION, "transactions": [{"amount": "abc"}]})


class TestJsonFileSnapshotStorage:
    """Tests for the local file backend."""

    @pytest.mark.asyncio
    async def test_missing_snapshot(self, tmp_path):
        """Test loading before anything was saved."""
        storage = JsonFileSnapshotStorage(tmp_path)
        assert await storage.load_snapshot("expense-store") is None

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path):
        """Test a snapshot is written atomically and read back."""
        storage = JsonFileSnapshotStorage(tmp_path / "nested" / "data")
        data = dump_state(_populated_ledger().state)

        assert await storage.save_snapshot("expense-store", data) is True
        assert await storage.load_snapshot("expense-store") == data

        files = sorted(p.name for p in (tmp_path / "nested" / "data").iterdir())
        assert files == ["expense-store.json"]

    @pytest.mark.asyncio
    async def test_overwrite(self, tmp_path):
        """Test saving again replaces the previous snapshot."""
        storage = JsonFileSnapshotStorage(tmp_path)
        await storage.save_snapshot("store", {"schema_version": 1, "dark_mode": False})
        await storage.save_snapshot("store", {"schema_version": 1, "dark_mode": True})
        assert (await storage.load_snapshot("store"))["dark_mode"] is True

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        """Test unreadable JSON raises StorageError."""
        (tmp_path / "store.json").write_text("{not json", encoding="utf-8")
        storage = JsonFileSnapshotStorage(tmp_path)
        with pytest.raises(StorageError):
            await storage.load_snapshot("store")

    @pytest.mark.asyncio
    async def test_unsafe_key(self, tmp_path):
        """Test keys can't escape the data directory."""
        storage = JsonFileSnapshotStorage(tmp_path)
        with pytest.raises(StorageError):
            await storage.save_snapshot("../outside", {})

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        """Test deletion is idempotent."""
        storage = JsonFileSnapshotStorage(tmp_path)
        await storage.save_snapshot("store", {})
        assert await storage.delete_snapshot("store") is True
        assert await storage.delete_snapshot("store") is False


class TestInMemorySnapshotStorage:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_returns_copies(self):
        """Test callers can't mutate what the store holds."""
        storage = InMemorySnapshotStorage()
        data = {"schema_version": 1, "transactions": []}
        await storage.save_snapshot("store", data)
        data["transactions"].append("x")

        loaded = await storage.load_snapshot("store")
        assert loaded["transactions"] == []
        loaded["transactions"].append("y")
        assert (await storage.load_snapshot("store"))["transactions"] == []
