"""Asset transfer collaborator contract and reference implementation."""

from vesting.transfer.asset_transfer import (
    AssetTransfer,
    InMemoryAssetBook,
    TransferResult,
)

__all__ = ["AssetTransfer", "InMemoryAssetBook", "TransferResult"]
