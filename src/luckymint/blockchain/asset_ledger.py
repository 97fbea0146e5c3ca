"""
luckymint/blockchain/asset_ledger.py

Asset ledger that holds and transfers minted tokens.

Architecture:
    AssetLedger (abstract)
    └── StoreAssetLedger (balances kept in a RecordStore backend)

The engine only ever calls the abstract interface:
    store_exists / create_store   - make sure the participant can receive
    remove_store                  - undo a store opened for a mint that failed
    mint                          - create new units of an asset kind
    deposit                       - deliver minted units to an account
    burn                          - destroy minted units that were never delivered

Usage:
    ledger = StoreAssetLedger(MemoryBackend())
    await ledger.create_store("alice", "LUCK")
    asset = await ledger.mint("LUCK", 4500)
    await ledger.deposit("alice", asset)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Any, Dict

from ..errors import ArithmeticFault, AssetLedgerError
from ..protocol.numeric import checked_add, checked_sub
from ..protocol.storage import RecordStore, StorageBackend

logger = logging.getLogger("luckymint.blockchain.asset_ledger")


STORES_NAMESPACE = "stores"
SUPPLY_NAMESPACE = "supply"


@dataclass(frozen=True)
class Asset:
    """A quantity of one asset kind in transit between mint and deposit."""
    kind: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AssetLedger(ABC):
    """
    Abstract base class for asset ledgers.

    Subclass this to back the engine with a different token system.
    """

    @abstractmethod
    async def mint(self, asset_kind: str, amount: int) -> Asset:
        """Create amount new units of asset_kind."""
        pass

    @abstractmethod
    async def deposit(self, account_id: str, asset: Asset) -> None:
        """Deliver a minted asset into an account's store."""
        pass

    @abstractmethod
    async def burn(self, asset: Asset) -> None:
        """Destroy a minted asset that was not delivered."""
        pass

    @abstractmethod
    async def store_exists(self, account_id: str, asset_kind: str) -> bool:
        """Check whether the account can hold asset_kind."""
        pass

    @abstractmethod
    async def create_store(self, account_id: str, asset_kind: str) -> None:
        """Open a store for asset_kind in the account."""
        pass

    @abstractmethod
    async def remove_store(self, account_id: str, asset_kind: str) -> None:
        """Remove an empty store opened for asset_kind."""
        pass

    @abstractmethod
    async def balance_of(self, account_id: str, asset_kind: str) -> int:
        """Current balance (0 if the store does not exist)."""
        pass


class StoreAssetLedger(AssetLedger):
    """
    Asset ledger persisted through a storage backend.

    Tracks, per asset kind, the total issued and the amount minted but not
    yet deposited. A deposit can never deliver more than is outstanding, so
    assets cannot be fabricated outside mint().
    """

    def __init__(self, backend: StorageBackend):
        self._stores = RecordStore(STORES_NAMESPACE, backend)
        self._supply = RecordStore(SUPPLY_NAMESPACE, backend)

    @staticmethod
    def _store_key(account_id: str, asset_kind: str) -> str:
        return f"{account_id}:{asset_kind}"

    async def _get_supply(self, asset_kind: str) -> Dict[str, Any]:
        supply = await self._supply.get(asset_kind)
        if supply is None:
            supply = {"asset_kind": asset_kind, "issued": 0, "outstanding": 0}
        return supply

    async def mint(self, asset_kind: str, amount: int) -> Asset:
        if not isinstance(amount, int) or amount <= 0:
            raise AssetLedgerError(f"Cannot mint non-positive amount {amount!r}")

        supply = await self._get_supply(asset_kind)
        try:
            supply["issued"] = checked_add(supply["issued"], amount)
            supply["outstanding"] = checked_add(supply["outstanding"], amount)
        except ArithmeticFault as e:
            raise AssetLedgerError(f"Issued supply of {asset_kind} would overflow: {e}")
        await self._supply.put(asset_kind, supply)

        logger.debug(f"Minted {amount} {asset_kind}")
        return Asset(kind=asset_kind, amount=amount)

    async def deposit(self, account_id: str, asset: Asset) -> None:
        key = self._store_key(account_id, asset.kind)
        store = await self._stores.get(key)
        if store is None:
            raise AssetLedgerError(f"Account {account_id} has no {asset.kind} store")

        supply = await self._get_supply(asset.kind)
        if asset.amount > supply["outstanding"]:
            raise AssetLedgerError(
                f"Deposit of {asset.amount} {asset.kind} exceeds outstanding "
                f"minted amount {supply['outstanding']}"
            )

        store["balance"] = checked_add(store["balance"], asset.amount)
        supply["outstanding"] = checked_sub(supply["outstanding"], asset.amount)
        await self._stores.put(key, store)
        await self._supply.put(asset.kind, supply)

        logger.debug(f"Deposited {asset.amount} {asset.kind} to {account_id}")

    async def burn(self, asset: Asset) -> None:
        supply = await self._get_supply(asset.kind)
        if asset.amount > supply["outstanding"]:
            raise AssetLedgerError(
                f"Cannot burn {asset.amount} {asset.kind}; only "
                f"{supply['outstanding']} outstanding"
            )
        supply["issued"] = checked_sub(supply["issued"], asset.amount)
        supply["outstanding"] = checked_sub(supply["outstanding"], asset.amount)
        await self._supply.put(asset.kind, supply)
        logger.info(f"Burned undelivered {asset.amount} {asset.kind}")

    async def store_exists(self, account_id: str, asset_kind: str) -> bool:
        return await self._stores.exists(self._store_key(account_id, asset_kind))

    async def create_store(self, account_id: str, asset_kind: str) -> None:
        key = self._store_key(account_id, asset_kind)
        if await self._stores.exists(key):
            return
        await self._stores.put(key, {
            "account_id": account_id,
            "asset_kind": asset_kind,
            "balance": 0,
        })
        logger.debug(f"Created {asset_kind} store for {account_id}")

    async def remove_store(self, account_id: str, asset_kind: str) -> None:
        key = self._store_key(account_id, asset_kind)
        store = await self._stores.get(key)
        if store is None:
            return
        if store["balance"] != 0:
            raise AssetLedgerError(
                f"Cannot remove {asset_kind} store of {account_id} holding {store['balance']}"
            )
        await self._stores.delete(key)
        logger.debug(f"Removed {asset_kind} store for {account_id}")

    async def balance_of(self, account_id: str, asset_kind: str) -> int:
        store = await self._stores.get(self._store_key(account_id, asset_kind))
        return store["balance"] if store else 0

    async def issued_supply(self, asset_kind: str) -> int:
        """Total units of asset_kind minted and not burned."""
        return (await self._get_supply(asset_kind))["issued"]
