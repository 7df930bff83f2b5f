"""Initial schema: documents, tags, assets, infobox fields

Revision ID: 5c1e9a7f3b20
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7f3b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Detect database type
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"

    # Use appropriate timestamp defaults
    if is_sqlite:
        now_default = sa.text("(CURRENT_TIMESTAMP)")
    else:
        now_default = sa.text("now()")
    timestamp_type = sa.DateTime(timezone=True)

    # Create documents table
    op.create_table(
        "documents",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("fingerprint", sa.String(length=64), nullable=True),
        sa.Column("author_username", sa.String(length=255), nullable=True),
        sa.Column("deleted_at", timestamp_type, nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", timestamp_type, server_default=now_default, nullable=False),
        sa.Column("updated_at", timestamp_type, server_default=now_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_documents_title"), "documents", ["title"], unique=False)
    op.create_index(op.f("ix_documents_deleted_at"), "documents", ["deleted_at"], unique=False)

    # Create tags table
    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", timestamp_type, server_default=now_default, nullable=False),
        sa.Column("updated_at", timestamp_type, server_default=now_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tags_name"), "tags", ["name"], unique=True)

    # Create document/tag association table
    op.create_table(
        "document_tags",
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("tag_id", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("document_id", "tag_id"),
    )

    # Create assets table
    op.create_table(
        "assets",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("asset_path", sa.String(length=255), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("caption", sa.String(length=1000), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=True),
        sa.Column("size", sa.Integer(), nullable=True),
        sa.Column("created_at", timestamp_type, server_default=now_default, nullable=False),
        sa.Column("updated_at", timestamp_type, server_default=now_default, nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_assets_document_id"), "assets", ["document_id"], unique=False)
    op.create_index(op.f("ix_assets_content_hash"), "assets", ["content_hash"], unique=False)

    # Create infobox fields table
    op.create_table(
        "infobox_fields",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("field_key", sa.String(length=255), nullable=False),
        sa.Column("field_value", sa.Text(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_infobox_fields_document_id"), "infobox_fields", ["document_id"], unique=False
    )


def downgrade() -> None:
    # Drop indexes
    op.drop_index(op.f("ix_infobox_fields_document_id"), table_name="infobox_fields")
    op.drop_index(op.f("ix_assets_content_hash"), table_name="assets")
    op.drop_index(op.f("ix_assets_document_id"), table_name="assets")
    op.drop_index(op.f("ix_tags_name"), table_name="tags")
    op.drop_index(op.f("ix_documents_deleted_at"), table_name="documents")
    op.drop_index(op.f("ix_documents_title"), table_name="documents")

    # Drop tables
    op.drop_table("infobox_fields")
    op.drop_table("assets")
    op.drop_table("document_tags")
    op.drop_table("tags")
    op.drop_table("documents")
