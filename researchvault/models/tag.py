"""Tag model and the document/tag association table."""

from sqlalchemy import Column, ForeignKey, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from researchvault.exceptions import ValidationError
from researchvault.models.base import Base, TimestampMixin, new_id

document_tags = Table(
    "document_tags",
    Base.metadata,
    Column(
        "document_id",
        String(255),
        ForeignKey("documents.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        String(255),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Tag(Base, TimestampMixin):
    """A keyword shared by many documents, unique by normalized name."""

    __tablename__ = "tags"

    NAME_MAX_LENGTH = 100

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH), nullable=False, unique=True, index=True
    )

    documents: Mapped[list["Document"]] = relationship(
        "Document", secondary=document_tags, back_populates="tags"
    )

    @staticmethod
    def normalize_name(name: str) -> str:
        """Lowercase and trim a tag name."""
        return name.strip().lower()

    @validates("name")
    def _validate_name(self, key: str, name: str) -> str:
        if not isinstance(name, str):
            raise ValidationError("Tag name must be a string", "name")
        normalized = self.normalize_name(name)
        if not normalized:
            raise ValidationError("Tag name cannot be empty", "name")
        if len(normalized) > self.NAME_MAX_LENGTH:
            raise ValidationError(
                f"Tag name must be at most {self.NAME_MAX_LENGTH} characters", "name"
            )
        return normalized

    def __repr__(self) -> str:
        return f"<Tag(id={self.id!r}, name={self.name!r})>"
