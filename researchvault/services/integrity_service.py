"""Integrity verification: re-derive fingerprints and asset hashes and report tampering.

The verifier is read-only. It never repairs, quarantines or rolls back data;
findings are returned as records for a person to act on.

Per document, assets are checked in stored order and the first failing asset
ends the asset check. The fingerprint is recomputed independently of the
asset outcome, from the stored asset hashes rather than the files. When both
checks fail, the asset reason is reported, so a finding means "at least one
problem", not a full diagnosis.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from researchvault.exceptions import (
    AssetIOError,
    NotFoundError,
    ScanAbortedError,
    ValidationError,
)
from researchvault.models.document import Document
from researchvault.storage.asset_store import AssetStore
from researchvault.storage.repositories import DocumentRepository

logger = logging.getLogger(__name__)


class IntegrityReason(str, Enum):
    """Why a document was reported."""

    ASSET_MISSING = "Asset Missing"
    ASSET_TAMPERED = "Asset Content Tampered"
    ASSET_UNREADABLE = "Asset Unreadable"
    METADATA_TAMPERED = "Metadata/Content Tampered"


@dataclass(frozen=True)
class IntegrityFinding:
    """A document that failed verification."""

    document_id: str
    title: str
    reason: IntegrityReason

    def to_dict(self) -> dict[str, str]:
        return {"id": self.document_id, "title": self.title, "reason": self.reason.value}


@dataclass
class ScanResult:
    """Outcome of a full verification sweep.

    An aborted scan carries no findings; check ``aborted`` (or call
    ``raise_for_abort``) before reading an empty result as clean.
    """

    findings: list[IntegrityFinding] = field(default_factory=list)
    scanned: int = 0
    aborted: bool = False
    error: Optional[ScanAbortedError] = None

    @property
    def is_clean(self) -> bool:
        return not self.aborted and not self.findings

    def raise_for_abort(self) -> None:
        """Raise the ScanAbortedError if the scan did not complete."""
        if self.aborted:
            raise self.error or ScanAbortedError("Integrity scan aborted")


class IntegrityVerifier:
    """Audits every stored document against its fingerprint and asset files."""

    def __init__(self, session: Session, asset_store: AssetStore):
        """
        Initialize the verifier.

        Args:
            session: SQLAlchemy database session, used for reads only
            asset_store: Store holding the asset files
        """
        self.session = session
        self.asset_store = asset_store
        self.document_repo = DocumentRepository(session)

    def verify_all(self) -> ScanResult:
        """
        Verify every document, soft-deleted ones included.

        A single document's mismatch never stops the sweep. Any unexpected
        error does: it is logged and an aborted ScanResult with no findings
        is returned.
        """
        findings: list[IntegrityFinding] = []
        scanned = 0
        try:
            for document in self.document_repo.get_all_for_audit():
                finding = self.verify_document(document)
                scanned += 1
                if finding is not None:
                    logger.warning(
                        "Integrity violation in document %s (%r): %s",
                        finding.document_id,
                        finding.title,
                        finding.reason.value,
                    )
                    findings.append(finding)
        except Exception as e:
            logger.exception("Integrity scan aborted after %d document(s)", scanned)
            return ScanResult(
                findings=[],
                scanned=scanned,
                aborted=True,
                error=ScanAbortedError(f"Integrity scan aborted: {str(e)}", e),
            )

        logger.info(
            "Integrity scan complete: %d document(s) checked, %d finding(s)",
            scanned,
            len(findings),
        )
        return ScanResult(findings=findings, scanned=scanned)

    def verify_document(self, document: Document) -> Optional[IntegrityFinding]:
        """
        Verify one document.

        Returns:
            A finding, or None if the document is intact
        """
        asset_reason = self.check_assets(document)
        fingerprint_ok = document.expected_fingerprint() == document.fingerprint

        if asset_reason is not None:
            reason = asset_reason
        elif not fingerprint_ok:
            reason = IntegrityReason.METADATA_TAMPERED
        else:
            return None

        return IntegrityFinding(document_id=document.id, title=document.title, reason=reason)

    def check_assets(self, document: Document) -> Optional[IntegrityReason]:
        """Check asset files in stored order, stopping at the first problem."""
        for asset in document.ordered_assets:
            try:
                actual_hash = self.asset_store.content_hash(asset.asset_path)
            except NotFoundError:
                return IntegrityReason.ASSET_MISSING
            except (AssetIOError, ValidationError) as e:
                logger.warning("Cannot read asset %s of document %s: %s", asset.asset_path, document.id, e)
                return IntegrityReason.ASSET_UNREADABLE

            if actual_hash != asset.content_hash:
                return IntegrityReason.ASSET_TAMPERED
        return None
