"""Asset ingestion: fingerprint attachment bytes and store them by content hash."""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from researchvault.exceptions import AssetIOError, ValidationError
from researchvault.hashing import hash_bytes
from researchvault.storage.asset_store import AssetStore

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class IngestedAsset:
    """Result of ingesting one attachment.

    This is what the document service needs to attach an asset: the file is
    already stored and never read again while computing fingerprints.
    """

    content_hash: str
    stored_file_name: str
    size: int
    mime_type: str


class AssetService:
    """Computes content hashes for attachments and writes them to the asset store."""

    def __init__(self, asset_store: AssetStore):
        """
        Initialize asset service.

        Args:
            asset_store: Content-addressed store the bytes are written to
        """
        self.asset_store = asset_store

    def ingest(self, source_path: str | Path) -> IngestedAsset:
        """
        Hash a file and copy it into the asset store as ``<hash><ext>``.

        A file with the same name already in the store counts as a cache hit
        and is left untouched.

        Args:
            source_path: Path of the file to attach

        Returns:
            IngestedAsset describing the stored file

        Raises:
            AssetIOError: If the source cannot be read or the copy fails
        """
        source = Path(source_path)
        try:
            data = source.read_bytes()
        except OSError as e:
            raise AssetIOError(f"Cannot read asset source {source}: {e}", str(source), e) from e
        return self.ingest_bytes(data, source.name)

    def ingest_bytes(self, data: bytes, original_name: str) -> IngestedAsset:
        """
        Hash in-memory bytes and store them under a name derived from the hash.

        Args:
            data: File contents
            original_name: Name the bytes came with; only its extension is kept

        Returns:
            IngestedAsset describing the stored file
        """
        if not isinstance(data, (bytes, bytearray)):
            raise ValidationError("Asset data must be bytes", "data")

        content_hash = hash_bytes(bytes(data))
        extension = Path(original_name).suffix
        stored_file_name = f"{content_hash}{extension}"
        mime_type = mimetypes.guess_type(original_name)[0] or DEFAULT_MIME_TYPE

        written = self.asset_store.write(stored_file_name, bytes(data))
        if written:
            logger.info("Stored asset %s (%d bytes)", stored_file_name, len(data))

        return IngestedAsset(
            content_hash=content_hash,
            stored_file_name=stored_file_name,
            size=len(data),
            mime_type=mime_type,
        )

    def ingest_many(self, source_paths: Iterable[str | Path]) -> list[IngestedAsset]:
        """Ingest several files, preserving their order."""
        return [self.ingest(path) for path in source_paths]
