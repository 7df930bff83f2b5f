"""Shared pytest fixtures for Research Vault tests."""

import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from researchvault.services.asset_service import AssetService
from researchvault.services.backup_service import BackupArchiver
from researchvault.services.document_service import DocumentService
from researchvault.services.integrity_service import IntegrityVerifier
from researchvault.services.tag_service import TagService
from researchvault.storage.asset_store import AssetStore
from researchvault.storage.database import Database


@pytest.fixture(scope="function")
def temp_db() -> Generator[Database, None, None]:
    """
    Create a temporary SQLite database for testing.

    Yields:
        Database instance with tables created
    """
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    database = Database(f"sqlite:///{db_path}")
    database.create_tables()

    yield database

    # Cleanup
    database.open()
    database.drop_tables()
    database.close()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def db_session(temp_db):
    """Get a database session from temp_db."""
    with temp_db.session() as session:
        yield session


@pytest.fixture
def asset_store(tmp_path) -> AssetStore:
    """Asset store rooted in a per-test directory."""
    return AssetStore(tmp_path / "assets")


@pytest.fixture
def asset_service(asset_store) -> AssetService:
    return AssetService(asset_store)


@pytest.fixture
def document_service(db_session) -> DocumentService:
    """Create a document service instance."""
    return DocumentService(db_session)


@pytest.fixture
def tag_service(db_session) -> TagService:
    """Create a tag service instance."""
    return TagService(db_session)


@pytest.fixture
def verifier(db_session, asset_store) -> IntegrityVerifier:
    """Create an integrity verifier sharing the test session."""
    return IntegrityVerifier(db_session, asset_store)


@pytest.fixture
def archiver(temp_db, asset_store, tmp_path) -> BackupArchiver:
    """Backup archiver writing to a per-test backup directory."""
    return BackupArchiver(temp_db, asset_store, backup_dir=tmp_path / "backups", keep_count=3)


@pytest.fixture
def make_file(tmp_path) -> Callable[[str, bytes], Path]:
    """Factory writing source files to attach, outside the asset store."""
    source_dir = tmp_path / "sources"
    source_dir.mkdir()

    def _make(name: str, data: bytes) -> Path:
        path = source_dir / name
        path.write_bytes(data)
        return path

    return _make


@pytest.fixture
def sample_document(document_service, asset_service, make_file):
    """A document with tags, two assets and an infobox."""
    first = asset_service.ingest(make_file("beach.jpg", b"omaha beach photo"))
    second = asset_service.ingest(make_file("map.png", b"landing map"))
    return document_service.create_document(
        title="Operation Overlord",
        content="D-Day landings in Normandy.",
        tag_names=["WW2", "1944"],
        assets=[first, second],
        infobox=[("Date", "6 June 1944"), ("Location", "Normandy")],
        author="historian",
    )
