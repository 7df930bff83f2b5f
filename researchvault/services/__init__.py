"""Service layer for business logic and validation."""

from researchvault.services.asset_service import AssetService, IngestedAsset
from researchvault.services.backup_service import BackupArchiver, RestoreResult
from researchvault.services.document_service import DocumentService
from researchvault.services.integrity_service import (
    IntegrityFinding,
    IntegrityReason,
    IntegrityVerifier,
    ScanResult,
)
from researchvault.services.tag_service import TagService

__all__ = [
    "AssetService",
    "IngestedAsset",
    "BackupArchiver",
    "RestoreResult",
    "DocumentService",
    "IntegrityFinding",
    "IntegrityReason",
    "IntegrityVerifier",
    "ScanResult",
    "TagService",
]
