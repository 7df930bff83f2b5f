"""Tag service: resolve, list, rename and delete keywords."""

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from researchvault.exceptions import (
    DatabaseError,
    DuplicateError,
    NotFoundError,
    ValidationError,
    VaultError,
)
from researchvault.models.tag import Tag
from researchvault.storage.repositories import DocumentRepository, TagRepository

logger = logging.getLogger(__name__)


class TagService:
    """Service layer for tag operations.

    Renaming or deleting a tag changes the tag names of every document that
    references it. By default fingerprints of those documents are left as they
    were, so the integrity verifier will report them; pass
    ``refresh_fingerprints=True`` to re-derive them instead.
    """

    def __init__(self, session: Session):
        """
        Initialize tag service with database session.

        Args:
            session: SQLAlchemy database session
        """
        self.session = session
        self.tag_repo = TagRepository(session)
        self.document_repo = DocumentRepository(session)

    def resolve_tags(self, tag_names: Iterable[str]) -> list[Tag]:
        """
        Resolve tag names to Tag records, creating missing ones.

        Blank names are dropped and names that normalize to the same value
        collapse to one tag. Does not commit.
        """
        if isinstance(tag_names, str):
            raise ValidationError("Tag names must be a list of strings", "tags")

        resolved: list[Tag] = []
        seen: set[str] = set()
        for name in tag_names:
            if not isinstance(name, str):
                raise ValidationError("Tag names must be strings", "tags")
            tag = self.tag_repo.get_or_create(name)
            if tag is None or tag.id in seen:
                continue
            seen.add(tag.id)
            resolved.append(tag)
        return resolved

    def list_tags(self) -> list[dict[str, Any]]:
        """List all tags with the number of documents using each."""
        try:
            return [
                {"id": tag.id, "name": tag.name, "count": count}
                for tag, count in self.tag_repo.get_all_with_counts()
            ]
        except Exception as e:
            raise DatabaseError(f"Failed to list tags: {str(e)}", e) from e

    def rename_tag(
        self, old_name: str, new_name: str, refresh_fingerprints: bool = False
    ) -> Tag:
        """
        Rename a tag.

        Raises:
            ValidationError: If either name is blank or they are equal
            NotFoundError: If no tag has old_name
            DuplicateError: If a tag named new_name already exists
            DatabaseError: If database operation fails
        """
        normalized_old = Tag.normalize_name(old_name or "")
        normalized_new = Tag.normalize_name(new_name or "")
        if not normalized_old or not normalized_new:
            raise ValidationError("Tag names cannot be empty", "name")
        if normalized_old == normalized_new:
            raise ValidationError("New name must be different from old name", "name")

        tag = self.tag_repo.get_by_name(normalized_old)
        if tag is None:
            raise NotFoundError("Tag", normalized_old)
        if self.tag_repo.get_by_name(normalized_new) is not None:
            raise DuplicateError("Tag", "name", normalized_new)

        try:
            tag.name = normalized_new
            self.session.flush()
            affected = self._after_tag_change(tag.id, refresh_fingerprints)
            self.session.commit()
            logger.info(
                "Renamed tag %r to %r (%d document(s) affected)",
                normalized_old,
                normalized_new,
                len(affected),
            )
            return tag
        except VaultError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to rename tag: {str(e)}", e) from e

    def delete_tag(self, tag_id: str, refresh_fingerprints: bool = False) -> int:
        """
        Delete a tag and remove it from every document.

        Returns:
            Number of documents that referenced the tag

        Raises:
            NotFoundError: If the tag does not exist
            DatabaseError: If database operation fails
        """
        tag = self.tag_repo.get_by_id(tag_id)
        if tag is None:
            raise NotFoundError("Tag", tag_id)

        tag_name = tag.name
        try:
            documents = self.document_repo.get_by_tag_id(tag_id)
            for document in documents:
                document.tags.remove(tag)
            self.session.flush()
            self.tag_repo.delete(tag)
            if refresh_fingerprints:
                self._refresh(documents)
            else:
                self._warn_stale(documents)
            self.session.commit()
            logger.info("Deleted tag %r from %d document(s)", tag_name, len(documents))
            return len(documents)
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to delete tag: {str(e)}", e) from e

    def _after_tag_change(self, tag_id: str, refresh_fingerprints: bool) -> list:
        documents = self.document_repo.get_by_tag_id(tag_id)
        if refresh_fingerprints:
            self._refresh(documents)
        else:
            self._warn_stale(documents)
        return documents

    def _refresh(self, documents: list) -> None:
        for document in documents:
            document.fingerprint = document.expected_fingerprint()
        self.session.flush()

    def _warn_stale(self, documents: list) -> None:
        if documents:
            logger.warning(
                "Tag change left %d document fingerprint(s) stale: %s",
                len(documents),
                ", ".join(document.id for document in documents),
            )
