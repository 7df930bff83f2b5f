"""Repository pattern implementation for data access layer."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from researchvault.models.asset import Asset
from researchvault.models.document import Document
from researchvault.models.tag import Tag, document_tags

logger = logging.getLogger(__name__)


def _with_children(stmt):
    """Eager-load everything that feeds a document fingerprint."""
    return stmt.options(
        selectinload(Document.tags),
        selectinload(Document.assets),
        selectinload(Document.infobox),
    )


class DocumentRepository:
    """Repository for document operations."""

    def __init__(self, session: Session):
        """Initialize repository with a database session."""
        self.session = session

    def create(self, document: Document) -> Document:
        """Create a new document."""
        self.session.add(document)
        self.session.flush()
        return document

    def get_by_id(self, document_id: str) -> Optional[Document]:
        """Get document by ID."""
        return self.session.get(Document, document_id)

    def get_by_id_with_children(self, document_id: str) -> Optional[Document]:
        """Get document by ID with tags, assets and infobox loaded."""
        stmt = _with_children(select(Document).where(Document.id == document_id))
        return self.session.scalar(stmt)

    def get_all(
        self,
        include_deleted: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[Document]:
        """Get documents, newest first."""
        stmt = select(Document)
        if not include_deleted:
            stmt = stmt.where(Document.deleted_at.is_(None))
        stmt = stmt.order_by(Document.created_at.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(_with_children(stmt)))

    def get_all_for_audit(self) -> list[Document]:
        """Get every document, soft-deleted ones included, oldest first."""
        stmt = _with_children(select(Document).order_by(Document.created_at, Document.id))
        return list(self.session.scalars(stmt))

    def search(self, term: str, limit: int = 50) -> list[Document]:
        """Case-insensitive substring search on title and content of active documents."""
        pattern = f"%{term}%"
        stmt = (
            select(Document)
            .where(
                Document.deleted_at.is_(None),
                or_(Document.title.ilike(pattern), Document.content.ilike(pattern)),
            )
            .order_by(Document.created_at.desc())
            .limit(limit)
        )
        return list(self.session.scalars(_with_children(stmt)))

    def find_by_title(self, title: str) -> Optional[Document]:
        """Find an active document by title (case-insensitive exact match)."""
        stmt = select(Document).where(
            Document.deleted_at.is_(None),
            func.lower(Document.title) == title.lower(),
        )
        return self.session.scalars(_with_children(stmt)).first()

    def get_by_tag_id(self, tag_id: str) -> list[Document]:
        """Get all documents (deleted included) referencing a tag."""
        stmt = (
            select(Document)
            .join(document_tags, document_tags.c.document_id == Document.id)
            .where(document_tags.c.tag_id == tag_id)
            .order_by(Document.created_at)
        )
        return list(self.session.scalars(_with_children(stmt)))

    def update(self, document: Document) -> Document:
        """Update an existing document."""
        self.session.flush()
        return document


class AssetRepository:
    """Repository for asset records."""

    def __init__(self, session: Session):
        """Initialize repository with a database session."""
        self.session = session

    def get_by_id(self, asset_id: str) -> Optional[Asset]:
        """Get asset by ID."""
        return self.session.get(Asset, asset_id)


class TagRepository:
    """Repository for tag operations."""

    def __init__(self, session: Session):
        """Initialize repository with a database session."""
        self.session = session

    def get_by_id(self, tag_id: str) -> Optional[Tag]:
        """Get tag by ID."""
        return self.session.get(Tag, tag_id)

    def get_by_name(self, name: str) -> Optional[Tag]:
        """Get tag by name, normalizing it first."""
        stmt = select(Tag).where(Tag.name == Tag.normalize_name(name))
        return self.session.scalar(stmt)

    def get_all(self) -> list[Tag]:
        """Get all tags ordered by name."""
        return list(self.session.scalars(select(Tag).order_by(Tag.name)))

    def get_all_with_counts(self) -> list[tuple[Tag, int]]:
        """Get all tags with the number of documents referencing each.

        Ordered by count descending, then name.
        """
        usage = func.count(document_tags.c.document_id)
        stmt = (
            select(Tag, usage.label("document_count"))
            .outerjoin(document_tags, document_tags.c.tag_id == Tag.id)
            .group_by(Tag.id)
            .order_by(usage.desc(), Tag.name)
        )
        return [(tag, count) for tag, count in self.session.execute(stmt).all()]

    def get_or_create(self, name: str) -> Optional[Tag]:
        """
        Get a tag by name, creating it if absent.

        Safe under concurrent creation: if another writer inserts the same
        name first, the unique constraint fires, the insert is rolled back to
        a savepoint and the existing tag is re-fetched.

        Returns:
            The tag, or None if the name is blank
        """
        normalized = Tag.normalize_name(name)
        if not normalized:
            return None

        tag = self.get_by_name(normalized)
        if tag is not None:
            return tag

        try:
            with self.session.begin_nested():
                tag = Tag(name=normalized)
                self.session.add(tag)
                self.session.flush()
            return tag
        except IntegrityError:
            logger.debug("Tag %r created concurrently, re-fetching", normalized)
            return self.get_by_name(normalized)

    def delete(self, tag: Tag) -> None:
        """Delete a tag; association rows go with it."""
        self.session.delete(tag)
        self.session.flush()
