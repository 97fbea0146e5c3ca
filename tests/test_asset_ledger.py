"""
luckymint/tests/test_asset_ledger.py

Tests for the storage-backed asset ledger.
"""

import pytest

from luckymint.blockchain.asset_ledger import Asset, AssetLedger, StoreAssetLedger
from luckymint.errors import AssetLedgerError
from luckymint.protocol.storage import MemoryBackend


@pytest.fixture
def ledger():
    return StoreAssetLedger(MemoryBackend())


class TestStores:
    """Test store management."""

    @pytest.mark.trio
    async def test_create_store(self, ledger):
        assert not await ledger.store_exists("alice", "LUCK")
        await ledger.create_store("alice", "LUCK")
        assert await ledger.store_exists("alice", "LUCK")
        assert await ledger.balance_of("alice", "LUCK") == 0

    @pytest.mark.trio
    async def test_create_store_idempotent(self, ledger):
        """Test re-creating a store keeps its balance."""
        await ledger.create_store("alice", "LUCK")
        await ledger.deposit("alice", await ledger.mint("LUCK", 10))
        await ledger.create_store("alice", "LUCK")
        assert await ledger.balance_of("alice", "LUCK") == 10

    @pytest.mark.trio
    async def test_stores_per_kind(self, ledger):
        await ledger.create_store("alice", "LUCK")
        assert not await ledger.store_exists("alice", "GOLD")

    @pytest.mark.trio
    async def test_balance_of_missing_store(self, ledger):
        assert await ledger.balance_of("nobody", "LUCK") == 0

    @pytest.mark.trio
    async def test_remove_empty_store(self, ledger):
        await ledger.create_store("alice", "LUCK")
        await ledger.remove_store("alice", "LUCK")
        assert not await ledger.store_exists("alice", "LUCK")

    @pytest.mark.trio
    async def test_remove_missing_store(self, ledger):
        await ledger.remove_store("alice", "LUCK")
        assert not await ledger.store_exists("alice", "LUCK")

    @pytest.mark.trio
    async def test_remove_funded_store(self, ledger):
        await ledger.create_store("alice", "LUCK")
        await ledger.deposit("alice", await ledger.mint("LUCK", 10))
        with pytest.raises(AssetLedgerError, match="holding 10"):
            await ledger.remove_store("alice", "LUCK")
        assert await ledger.balance_of("alice", "LUCK") == 10


class TestMintAndDeposit:
    """Test minting and delivery."""

    @pytest.mark.trio
    async def test_mint_then_deposit(self, ledger):
        await ledger.create_store("alice", "LUCK")
        asset = await ledger.mint("LUCK", 4500)
        assert asset == Asset(kind="LUCK", amount=4500)

        await ledger.deposit("alice", asset)
        assert await ledger.balance_of("alice", "LUCK") == 4500
        assert await ledger.issued_supply("LUCK") == 4500

    @pytest.mark.trio
    async def test_balances_accumulate(self, ledger):
        await ledger.create_store("alice", "LUCK")
        await ledger.deposit("alice", await ledger.mint("LUCK", 100))
        await ledger.deposit("alice", await ledger.mint("LUCK", 250))
        assert await ledger.balance_of("alice", "LUCK") == 350

    @pytest.mark.trio
    async def test_mint_non_positive(self, ledger):
        with pytest.raises(AssetLedgerError):
            await ledger.mint("LUCK", 0)
        with pytest.raises(AssetLedgerError):
            await ledger.mint("LUCK", -5)

    @pytest.mark.trio
    async def test_deposit_without_store(self, ledger):
        asset = await ledger.mint("LUCK", 10)
        with pytest.raises(AssetLedgerError, match="no LUCK store"):
            await ledger.deposit("alice", asset)

    @pytest.mark.trio
    async def test_deposit_unminted_asset(self, ledger):
        """Test an asset that was never minted cannot be deposited."""
        await ledger.create_store("alice", "LUCK")
        with pytest.raises(AssetLedgerError, match="outstanding"):
            await ledger.deposit("alice", Asset(kind="LUCK", amount=1000))

    @pytest.mark.trio
    async def test_asset_deposited_once(self, ledger):
        await ledger.create_store("alice", "LUCK")
        asset = await ledger.mint("LUCK", 10)
        await ledger.deposit("alice", asset)
        with pytest.raises(AssetLedgerError):
            await ledger.deposit("alice", asset)


class TestBurn:
    """Test burning undelivered assets."""

    @pytest.mark.trio
    async def test_burn_reduces_issued(self, ledger):
        asset = await ledger.mint("LUCK", 300)
        await ledger.burn(asset)
        assert await ledger.issued_supply("LUCK") == 0

    @pytest.mark.trio
    async def test_burn_more_than_outstanding(self, ledger):
        await ledger.create_store("alice", "LUCK")
        asset = await ledger.mint("LUCK", 300)
        await ledger.deposit("alice", asset)
        with pytest.raises(AssetLedgerError):
            await ledger.burn(asset)

    def test_is_asset_ledger(self, ledger):
        assert isinstance(ledger, AssetLedger)
