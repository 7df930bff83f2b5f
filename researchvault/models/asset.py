"""Asset model for binary attachments of a document."""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from researchvault.exceptions import ValidationError
from researchvault.models.base import Base, TimestampMixin, new_id


class Asset(Base, TimestampMixin):
    """An attachment owned by exactly one document.

    ``asset_path`` is the content-derived file name in the asset store
    (``<content_hash><ext>``). Only ``content_hash`` takes part in the parent
    document's fingerprint; ``caption`` is presentational.
    """

    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    document_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_path: Mapped[str] = mapped_column(String(255), nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    caption: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    document: Mapped["Document"] = relationship("Document", back_populates="assets")

    @validates("asset_path", "content_hash")
    def _validate_required(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Asset {key} is required and cannot be empty", key)
        return value

    @validates("caption")
    def _validate_caption(self, key: str, caption: str | None) -> str:
        if caption is None:
            return ""
        if not isinstance(caption, str):
            raise ValidationError("Caption must be a string", "caption")
        return caption

    def __repr__(self) -> str:
        return f"<Asset(id={self.id!r}, asset_path={self.asset_path!r}, document_id={self.document_id!r})>"
