"""
luckymint/blockchain/

Asset ledger integration for luckymint.

Ships a storage-backed ledger; other token systems plug in by
implementing AssetLedger.
"""

from .asset_ledger import (
    Asset,
    AssetLedger,
    StoreAssetLedger,
)

__all__ = [
    "Asset",
    "AssetLedger",
    "StoreAssetLedger",
]
