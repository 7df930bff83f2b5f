"""Document service: the only writer of document fingerprints."""

import logging
import uuid
from collections.abc import Mapping
from typing import Any, Iterable

from sqlalchemy.orm import Session

from researchvault.exceptions import (
    DatabaseError,
    DuplicateError,
    NotFoundError,
    ValidationError,
    VaultError,
)
from researchvault.models.asset import Asset
from researchvault.models.base import utcnow
from researchvault.models.document import Document
from researchvault.models.infobox import InfoboxField
from researchvault.services.asset_service import IngestedAsset
from researchvault.services.tag_service import TagService
from researchvault.storage.repositories import AssetRepository, DocumentRepository

logger = logging.getLogger(__name__)

InfoboxInput = Iterable[Mapping[str, str] | tuple[str, str]]
AssetInput = Iterable[IngestedAsset | Mapping[str, Any]]


class DocumentService:
    """Service layer for research entries with validation and error handling.

    Every mutation that touches hashed content (title, content, tags, assets,
    infobox) re-derives the fingerprint from the post-mutation state as its
    last step before commit. Captions and lifecycle fields are not hashed.

    Concurrent edits of the same document are last-write-wins.
    """

    ID_MAX_LENGTH = 255

    def __init__(self, session: Session):
        """
        Initialize document service with database session.

        Args:
            session: SQLAlchemy database session
        """
        self.session = session
        self.document_repo = DocumentRepository(session)
        self.asset_repo = AssetRepository(session)
        self.tag_service = TagService(session)

    def create_document(
        self,
        title: str,
        content: str = "",
        tag_names: Iterable[str] | None = None,
        assets: AssetInput | None = None,
        infobox: InfoboxInput | None = None,
        author: str | None = None,
        document_id: str | None = None,
    ) -> Document:
        """
        Create a new document and its fingerprint.

        Args:
            title: Document title (required, non-empty)
            content: Document body
            tag_names: Tag names; created if missing, normalized and de-duplicated
            assets: Already ingested assets, in display order
            infobox: Key/value pairs as dicts with "key"/"value" or 2-tuples
            author: Username of the creator
            document_id: Optional document ID. If not provided, generates a UUID.

        Returns:
            Created document

        Raises:
            ValidationError: If any field is invalid
            DuplicateError: If document with same ID already exists
            DatabaseError: If database operation fails
        """
        if document_id is None:
            document_id = str(uuid.uuid4())
        else:
            self._validate_id(document_id)

        if self.document_repo.get_by_id(document_id) is not None:
            raise DuplicateError("Document", "id", document_id)

        try:
            document = Document(
                id=document_id,
                title=title,
                content=content,
                author_username=author,
            )
            document.tags = self.tag_service.resolve_tags(tag_names or [])
            document.assets = self._build_assets(assets or [], start_order=0)
            document.infobox = self._build_infobox(infobox or [])
            self._refresh_fingerprint(document)

            self.document_repo.create(document)
            self.session.commit()
            logger.info(
                "Created document %s with %d asset(s), fingerprint %s",
                document.id,
                len(document.assets),
                document.fingerprint,
            )
            return document

        except VaultError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to create document: {str(e)}", e) from e

    def get_document(self, document_id: str) -> Document:
        """
        Get document by ID with tags, assets and infobox loaded.

        Raises:
            ValidationError: If document_id is invalid
            NotFoundError: If document is not found
        """
        self._validate_id(document_id)
        try:
            document = self.document_repo.get_by_id_with_children(document_id)
        except Exception as e:
            raise DatabaseError(f"Failed to get document: {str(e)}", e) from e
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    def update_document(
        self,
        document_id: str,
        title: str | None = None,
        content: str | None = None,
        tag_names: Iterable[str] | None = None,
        infobox: InfoboxInput | None = None,
        removed_asset_ids: Iterable[str] | None = None,
    ) -> Document:
        """
        Update a document and recompute its fingerprint from scratch.

        Asset removals are applied first, then field updates. Arguments left
        as None keep their current value; the fingerprint is re-derived in
        every case.

        Args:
            document_id: Document ID
            title: New title
            content: New content
            tag_names: New complete tag list (replaces existing)
            infobox: New complete infobox (replaces existing)
            removed_asset_ids: IDs of this document's assets to remove

        Returns:
            Updated document

        Raises:
            ValidationError: If any field is invalid
            NotFoundError: If the document or a removed asset is not found
            DatabaseError: If database operation fails
        """
        document = self.get_document(document_id)

        try:
            if removed_asset_ids:
                self._remove_assets(document, removed_asset_ids)

            if title is not None:
                document.title = title
            if content is not None:
                document.content = content
            if tag_names is not None:
                document.tags = self.tag_service.resolve_tags(tag_names)
            if infobox is not None:
                document.infobox = self._build_infobox(infobox)

            self._refresh_fingerprint(document)
            self.document_repo.update(document)
            self.session.commit()
            logger.info("Updated document %s, fingerprint %s", document.id, document.fingerprint)
            return document

        except VaultError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to update document: {str(e)}", e) from e

    def add_assets(self, document_id: str, assets: AssetInput) -> Document:
        """
        Append ingested assets after the existing ones and recompute the fingerprint.

        Raises:
            NotFoundError: If document is not found
            ValidationError: If an asset is malformed
            DatabaseError: If database operation fails
        """
        document = self.get_document(document_id)

        try:
            start_order = max((asset.display_order for asset in document.assets), default=-1) + 1
            for asset in self._build_assets(assets, start_order=start_order):
                document.assets.append(asset)

            self._refresh_fingerprint(document)
            self.document_repo.update(document)
            self.session.commit()
            logger.info(
                "Added assets to document %s (%d total), fingerprint %s",
                document.id,
                len(document.assets),
                document.fingerprint,
            )
            return document

        except VaultError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to add assets: {str(e)}", e) from e

    def remove_assets(self, document_id: str, asset_ids: Iterable[str]) -> Document:
        """Remove assets from a document and recompute its fingerprint."""
        return self.update_document(document_id, removed_asset_ids=list(asset_ids))

    def update_asset_caption(self, asset_id: str, caption: str) -> Asset:
        """
        Change an asset caption. Captions are not hashed, so the parent
        fingerprint is left as it is.

        Raises:
            NotFoundError: If asset is not found
            ValidationError: If caption is not a string
            DatabaseError: If database operation fails
        """
        self._validate_id(asset_id)
        asset = self.asset_repo.get_by_id(asset_id)
        if asset is None:
            raise NotFoundError("Asset", asset_id)

        try:
            asset.caption = caption
            self.session.flush()
            self.session.commit()
            return asset
        except VaultError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to update caption: {str(e)}", e) from e

    def delete_document(self, document_id: str, deleted_by: str | None = None) -> Document:
        """
        Soft-delete a document. The fingerprint is left untouched.

        Raises:
            NotFoundError: If document is not found
            DatabaseError: If database operation fails
        """
        document = self.get_document(document_id)
        try:
            document.deleted_at = utcnow()
            document.deleted_by = deleted_by
            self.session.commit()
            logger.info("Soft-deleted document %s by %s", document_id, deleted_by)
            return document
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to delete document: {str(e)}", e) from e

    def restore_document(self, document_id: str) -> Document:
        """
        Undo a soft delete. The fingerprint is left untouched.

        Raises:
            NotFoundError: If document is not found
            DatabaseError: If database operation fails
        """
        document = self.get_document(document_id)
        try:
            document.deleted_at = None
            document.deleted_by = None
            self.session.commit()
            logger.info("Restored document %s", document_id)
            return document
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to restore document: {str(e)}", e) from e

    def list_documents(
        self,
        include_deleted: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        List documents with pagination.

        Returns:
            List of document summaries with:
            - id, title, tags, asset_count, fingerprint
            - updated_at, deleted_at

        Raises:
            ValidationError: If limit or offset is invalid
            DatabaseError: If database operation fails
        """
        if limit < 0:
            raise ValidationError("limit must be non-negative", "limit")
        if offset < 0:
            raise ValidationError("offset must be non-negative", "offset")

        try:
            documents = self.document_repo.get_all(
                include_deleted=include_deleted, limit=limit, offset=offset
            )
            return [self._summarize(document) for document in documents]
        except Exception as e:
            raise DatabaseError(f"Failed to list documents: {str(e)}", e) from e

    def search_documents(self, query: str, limit: int = 50) -> list[Document]:
        """Search active documents by title or content. Blank queries return nothing."""
        if not query or not query.strip():
            return []
        try:
            return self.document_repo.search(query.strip(), limit=limit)
        except Exception as e:
            raise DatabaseError(f"Failed to search documents: {str(e)}", e) from e

    def find_by_title(self, title: str) -> Document | None:
        """Find an active document by exact title, ignoring case."""
        if not title or not title.strip():
            return None
        return self.document_repo.find_by_title(title.strip())

    def get_document_tags(self, document_id: str) -> list[dict[str, str]]:
        document = self.get_document(document_id)
        return [{"id": tag.id, "name": tag.name} for tag in document.tags]

    def get_assets(self, document_id: str) -> list[Asset]:
        """Assets of a document in stored order."""
        return self.get_document(document_id).ordered_assets

    def get_infobox(self, document_id: str) -> list[dict[str, Any]]:
        document = self.get_document(document_id)
        return [
            {"key": field.field_key, "value": field.field_value, "display_order": field.display_order}
            for field in document.infobox
        ]

    def expected_fingerprint(self, document_id: str) -> str:
        """Fingerprint the document's current stored state would have."""
        return self.get_document(document_id).expected_fingerprint()

    def _refresh_fingerprint(self, document: Document) -> None:
        document.fingerprint = document.expected_fingerprint()
        document.updated_at = utcnow()

    def _remove_assets(self, document: Document, asset_ids: Iterable[str]) -> None:
        removed = set(asset_ids)
        missing = removed - {asset.id for asset in document.assets}
        if missing:
            raise NotFoundError("Asset", sorted(missing)[0])
        for asset in [asset for asset in document.assets if asset.id in removed]:
            document.assets.remove(asset)

    def _build_assets(self, assets: AssetInput, start_order: int) -> list[Asset]:
        """Turn ingested asset descriptions into Asset records, in order."""
        built = []
        for offset, item in enumerate(assets):
            if isinstance(item, IngestedAsset):
                fields = {
                    "content_hash": item.content_hash,
                    "stored_file_name": item.stored_file_name,
                    "size": item.size,
                    "mime_type": item.mime_type,
                }
            elif isinstance(item, Mapping):
                fields = dict(item)
            else:
                raise ValidationError("Assets must be ingested assets or mappings", "assets")

            if "content_hash" not in fields or "stored_file_name" not in fields:
                raise ValidationError(
                    "Asset requires content_hash and stored_file_name", "assets"
                )

            built.append(
                Asset(
                    asset_path=fields["stored_file_name"],
                    content_hash=fields["content_hash"],
                    mime_type=fields.get("mime_type"),
                    size=fields.get("size"),
                    caption=fields.get("caption", ""),
                    display_order=start_order + offset,
                )
            )
        return built

    def _build_infobox(self, infobox: InfoboxInput) -> list[InfoboxField]:
        if isinstance(infobox, (str, Mapping)):
            raise ValidationError("Infobox must be a list of key/value pairs", "infobox")

        fields = []
        for index, item in enumerate(infobox):
            if isinstance(item, Mapping):
                if "key" not in item:
                    raise ValidationError("Infobox field key is required", "key")
                key, value = item["key"], item.get("value", "")
            else:
                try:
                    key, value = item
                except (TypeError, ValueError) as e:
                    raise ValidationError(
                        "Infobox fields must be (key, value) pairs", "infobox"
                    ) from e
            fields.append(InfoboxField(field_key=key, field_value=value, display_order=index))
        return fields

    def _summarize(self, document: Document) -> dict[str, Any]:
        return {
            "id": document.id,
            "title": document.title,
            "tags": sorted(document.tag_names),
            "asset_count": len(document.assets),
            "fingerprint": document.fingerprint,
            "updated_at": document.updated_at,
            "deleted_at": document.deleted_at,
        }

    def _validate_id(self, resource_id: str) -> None:
        """Validate a document or asset ID."""
        if not isinstance(resource_id, str):
            raise ValidationError("ID must be a string", "id")
        if not resource_id or not resource_id.strip():
            raise ValidationError("ID cannot be empty", "id")
        if len(resource_id) > self.ID_MAX_LENGTH:
            raise ValidationError(
                f"ID must be at most {self.ID_MAX_LENGTH} characters", "id"
            )
