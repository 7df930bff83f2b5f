"""Infobox field model: ordered key/value facts on a document."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from researchvault.exceptions import ValidationError
from researchvault.models.base import Base, new_id


class InfoboxField(Base):
    """A single key/value pair shown in a document's infobox."""

    __tablename__ = "infobox_fields"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    document_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    field_key: Mapped[str] = mapped_column(String(255), nullable=False)
    field_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    document: Mapped["Document"] = relationship("Document", back_populates="infobox")

    @validates("field_key")
    def _validate_key(self, key: str, field_key: str) -> str:
        if not isinstance(field_key, str) or not field_key.strip():
            raise ValidationError("Infobox key is required and cannot be empty", "key")
        return field_key

    @validates("field_value")
    def _validate_value(self, key: str, field_value: str) -> str:
        if not isinstance(field_value, str):
            raise ValidationError("Infobox value must be a string", "value")
        return field_value

    def as_pair(self) -> tuple[str, str]:
        return (self.field_key, self.field_value)

    def __repr__(self) -> str:
        return f"<InfoboxField(field_key={self.field_key!r}, document_id={self.document_id!r})>"
