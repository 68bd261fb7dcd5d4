"""
Snapshot encoding and migration.

A snapshot is the JSON form of LedgerState plus a schema_version.
Snapshots written before versioning existed have no version field and
use the original camelCase keys; they are treated as version 0 and
migrated on load.
"""

from typing import Any

from pydantic import ValidationError

from src.ledger.amounts import to_money
from src.models.finance import SCHEMA_VERSION, LedgerState
from src.services.storage.interface import SnapshotVersionError, StorageError


_V0_FIELD_RENAMES = {
    "accountId": "account_id",
    "categoryId": "category_id",
    "currencyCode": "currency_code",
    "targetId": "target_id",
    "timeFrame": "time_frame",
    "totalAmount": "total_amount",
    "startDate": "start_date",
    "categoryAllocations": "category_allocations",
    "targetAmount": "target_amount",
    "currentAmount": "current_amount",
    "defaultCurrency": "default_currency",
    "darkMode": "dark_mode",
}


def _rename_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_V0_FIELD_RENAMES.get(k, k): _rename_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_rename_keys(v) for v in value]
    return value


_MONEY_FIELDS = frozenset({
    "amount", "balance", "limit", "total_amount", "target_amount", "current_amount",
})


def _round_money(value: Any) -> Any:
    # Version 0 kept money as binary floats, so sums drift past two decimals
    if isinstance(value, dict):
        return {
            k: to_money(v) if k in _MONEY_FIELDS and isinstance(v, (int, float)) else _round_money(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_round_money(v) for v in value]
    return value


_V0_STATE_KEYS = frozenset({
    "transactions", "categories", "accounts", "budgets", "targets",
    "defaultCurrency", "darkMode",
})


def _migrate_v0(data: dict) -> dict:
    # Browser storage wrapped the state as {"state": {...}, "version": 0}
    if isinstance(data.get("state"), dict):
        data = data["state"]
    if not _V0_STATE_KEYS.intersection(data):
        raise StorageError(
            f"Unversioned snapshot has no ledger data (keys: {sorted(data)})"
        )
    migrated = _round_money(_rename_keys(data))
    for transaction in migrated.get("transactions", []):
        # Old entries stored full ISO timestamps in "date"
        if isinstance(transaction.get("date"), str):
            transaction["date"] = transaction["date"][:10]
    migrated["schema_version"] = 1
    return migrated


MIGRATIONS = {
    0: _migrate_v0,
}


def dump_state(state: LedgerState) -> dict:
    """Encode the state as a JSON-compatible dict."""
    data = state.model_dump(mode="json")
    data["schema_version"] = SCHEMA_VERSION
    return data


def load_state(data: dict) -> LedgerState:
    """
    Decode a snapshot, migrating older schema versions.

    Raises:
        SnapshotVersionError: If the snapshot is newer than this code
        StorageError: If the snapshot does not describe a valid state
    """
    version = data.get("schema_version", 0)
    if not isinstance(version, int) or version < 0:
        raise StorageError(f"Invalid snapshot schema version: {version!r}")
    if version > SCHEMA_VERSION:
        raise SnapshotVersionError(version, SCHEMA_VERSION)

    while version < SCHEMA_VERSION:
        data = MIGRATIONS[version](data)
        version = data["schema_version"]

    try:
        return LedgerState.model_validate(data)
    except ValidationError as e:
        raise StorageError(f"Snapshot is corrupt: {e}")
