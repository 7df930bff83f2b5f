"""Document model: the research entry protected by a fingerprint."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from researchvault.exceptions import ValidationError
from researchvault.hashing import compute_fingerprint
from researchvault.models.base import Base, TimestampMixin, new_id
from researchvault.models.tag import document_tags


class Document(Base, TimestampMixin):
    """A research entry made of title, content, tags, assets and infobox.

    ``fingerprint`` is only ever written by the document service; it must
    equal the hash of the current title, content, tag names, asset hashes and
    infobox pairs.
    """

    __tablename__ = "documents"

    TITLE_MAX_LENGTH = 500

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fingerprint: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    author_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    deleted_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    tags: Mapped[list["Tag"]] = relationship(
        "Tag", secondary=document_tags, back_populates="documents"
    )
    assets: Mapped[list["Asset"]] = relationship(
        "Asset",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Asset.display_order",
    )
    infobox: Mapped[list["InfoboxField"]] = relationship(
        "InfoboxField",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="InfoboxField.display_order",
    )

    @validates("title")
    def _validate_title(self, key: str, title: str) -> str:
        if not isinstance(title, str):
            raise ValidationError("Title must be a string", "title")
        if not title.strip():
            raise ValidationError("Title is required and cannot be empty", "title")
        if len(title) > self.TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title must be at most {self.TITLE_MAX_LENGTH} characters", "title"
            )
        return title

    @validates("content")
    def _validate_content(self, key: str, content: str) -> str:
        if not isinstance(content, str):
            raise ValidationError("Content must be a string", "content")
        return content

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def ordered_assets(self) -> list["Asset"]:
        """Assets in stored (display) order."""
        return sorted(self.assets, key=lambda asset: asset.display_order)

    @property
    def tag_names(self) -> list[str]:
        return [tag.name for tag in self.tags]

    @property
    def asset_hashes(self) -> list[str]:
        return [asset.content_hash for asset in self.ordered_assets]

    @property
    def infobox_pairs(self) -> list[tuple[str, str]]:
        return [field.as_pair() for field in self.infobox]

    def expected_fingerprint(self) -> str:
        """Fingerprint of the current in-memory state of this document."""
        return compute_fingerprint(
            self.title,
            self.content,
            self.tag_names,
            self.asset_hashes,
            self.infobox_pairs,
        )

    def __repr__(self) -> str:
        return f"<Document(id={self.id!r}, title={self.title!r})>"
