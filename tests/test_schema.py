"""Tests for the database schema, model validation and migrations."""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError

pytestmark = pytest.mark.unit

import researchvault
from researchvault.exceptions import ValidationError
from researchvault.models import Asset, Base, Document, InfoboxField, Tag
from researchvault.storage.repositories import AssetRepository, DocumentRepository

VERSIONS_DIR = Path(researchvault.__file__).parent / "migrations" / "versions"


def load_initial_migration():
    path = next(VERSIONS_DIR.glob("*_initial_schema_*.py"))
    spec = importlib.util.spec_from_file_location("initial_schema", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_create_document(db_session):
    """Test creating a document with children directly through the models."""
    doc = Document(title="Test Document", content="Body")
    doc.assets = [Asset(asset_path="abc.jpg", content_hash="abc", display_order=0)]
    doc.infobox = [InfoboxField(field_key="Date", field_value="1944", display_order=0)]
    doc.tags = [Tag(name=" History ")]
    db_session.add(doc)
    db_session.commit()

    retrieved = db_session.get(Document, doc.id)
    assert retrieved is not None
    assert retrieved.title == "Test Document"
    assert retrieved.tag_names == ["history"]
    assert retrieved.assets[0].caption == ""
    assert retrieved.infobox_pairs == [("Date", "1944")]
    assert retrieved.fingerprint is None
    assert retrieved.created_at is not None


def test_cascade_delete(db_session):
    """Test that deleting a document removes its assets, infobox and tag links."""
    doc = Document(title="Test Document")
    doc.assets = [Asset(asset_path="abc.jpg", content_hash="abc", display_order=0)]
    doc.infobox = [InfoboxField(field_key="k", field_value="v", display_order=0)]
    tag = Tag(name="kept")
    doc.tags = [tag]
    db_session.add(doc)
    db_session.commit()
    asset_id, field_id, tag_id = doc.assets[0].id, doc.infobox[0].id, tag.id

    db_session.delete(doc)
    db_session.commit()

    assert db_session.get(Asset, asset_id) is None
    assert db_session.get(InfoboxField, field_id) is None
    kept = db_session.get(Tag, tag_id)
    assert kept is not None
    assert kept.documents == []


def test_tag_names_unique(db_session):
    db_session.add(Tag(name="dup"))
    db_session.commit()
    db_session.add(Tag(name="DUP"))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


class TestModelValidation:
    """Tests for attribute validators."""

    def test_title_required(self):
        with pytest.raises(ValidationError) as exc_info:
            Document(title="  ")
        assert exc_info.value.field == "title"

    def test_title_must_be_string(self):
        with pytest.raises(ValidationError):
            Document(title=None)

    def test_content_must_be_string(self):
        with pytest.raises(ValidationError):
            Document(title="T", content=b"bytes")

    def test_tag_name_normalized(self):
        assert Tag(name="  WW2 ").name == "ww2"

    def test_tag_name_too_long(self):
        with pytest.raises(ValidationError):
            Tag(name="x" * 101)

    def test_asset_requires_hash(self):
        with pytest.raises(ValidationError):
            Asset(asset_path="a.jpg", content_hash="")

    def test_caption_none_becomes_empty(self):
        assert Asset(asset_path="a.jpg", content_hash="abc", caption=None).caption == ""

    def test_infobox_key_required(self):
        with pytest.raises(ValidationError) as exc_info:
            InfoboxField(field_key="", field_value="v")
        assert exc_info.value.field == "key"

    def test_ordered_assets(self):
        doc = Document(title="T")
        doc.assets = [
            Asset(asset_path="b", content_hash="hb", display_order=1),
            Asset(asset_path="a", content_hash="ha", display_order=0),
        ]
        assert doc.asset_hashes == ["ha", "hb"]


class TestMigrations:
    """Tests for the Alembic migration scripts."""

    @pytest.fixture
    def engine(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
        yield engine
        engine.dispose()

    def run(self, engine, step: str):
        migration = load_initial_migration()
        with engine.begin() as conn:
            with Operations.context(MigrationContext.configure(conn)):
                getattr(migration, step)()

    def test_upgrade_matches_models(self, engine):
        """Test the migrated schema has the tables and columns the models expect."""
        self.run(engine, "upgrade")
        inspector = inspect(engine)

        assert set(inspector.get_table_names()) == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == {column.name for column in table.columns}, name

    def test_upgrade_creates_unique_tag_index(self, engine):
        self.run(engine, "upgrade")
        indexes = {index["name"]: index for index in inspect(engine).get_indexes("tags")}
        assert indexes["ix_tags_name"]["unique"]

    def test_downgrade_drops_everything(self, engine):
        self.run(engine, "upgrade")
        self.run(engine, "downgrade")
        assert inspect(engine).get_table_names() == []


def test_repositories_expose_no_generic_field_updates():
    """Asset and document rows only change through the document service."""
    assert not hasattr(AssetRepository, "update_by_id")
    assert not hasattr(DocumentRepository, "update_by_id")
