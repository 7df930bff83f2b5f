"""Storage layer for Research Vault."""

from researchvault.storage.asset_store import AssetStore
from researchvault.storage.database import Database
from researchvault.storage.repositories import (
    AssetRepository,
    DocumentRepository,
    TagRepository,
)

__all__ = [
    "Database",
    "AssetStore",
    "DocumentRepository",
    "AssetRepository",
    "TagRepository",
]
