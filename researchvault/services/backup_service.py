"""Backup archiver: ZIP snapshots of the document store and asset files.

Archives contain ``documents.json``, ``tags.json``, ``metadata.json`` and the
asset files under ``assets/``. Rows are copied verbatim, fingerprints
included; nothing here recomputes hashes, so a tampered archive is still
caught by the integrity verifier after it is restored.
"""

import json
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import delete
from sqlalchemy.orm import Session

from researchvault import __version__
from researchvault.config import get_settings
from researchvault.exceptions import BackupError, ValidationError, VaultError
from researchvault.models.asset import Asset
from researchvault.models.document import Document
from researchvault.models.infobox import InfoboxField
from researchvault.models.tag import Tag, document_tags
from researchvault.storage.asset_store import AssetStore
from researchvault.storage.database import Database
from researchvault.storage.repositories import DocumentRepository, TagRepository
from researchvault.storage.serializers import (
    deserialize_document,
    deserialize_tag,
    serialize_document,
    serialize_tag,
)

logger = logging.getLogger(__name__)

DOCUMENTS_FILE = "documents.json"
TAGS_FILE = "tags.json"
METADATA_FILE = "metadata.json"
ASSETS_PREFIX = "assets/"

AUTO_BACKUP_PREFIX = "auto-backup-"
SAFETY_BACKUP_PREFIX = "pre-restore-"


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


@dataclass(frozen=True)
class RestoreResult:
    """Counts of what a restore loaded, plus where the pre-restore copy went."""

    document_count: int
    tag_count: int
    asset_count: int
    safety_backup: Path


@dataclass(frozen=True)
class BackupInfo:
    name: str
    size: int
    modified: datetime
    is_auto: bool


class BackupArchiver:
    """Snapshots and restores the whole vault as an opaque bulk copy."""

    FORMAT_VERSION = "1.0"

    def __init__(
        self,
        database: Database,
        asset_store: AssetStore,
        backup_dir: str | Path | None = None,
        keep_count: int | None = None,
    ):
        """
        Initialize the archiver.

        Args:
            database: Database whose connection is closed and reopened on restore
            asset_store: Asset files to include and replace
            backup_dir: Where automatic and safety backups go. If None, uses settings.
            keep_count: Automatic backups to retain. If None, uses settings.
        """
        settings = get_settings()
        self.database = database
        self.asset_store = asset_store
        self.backup_dir = Path(backup_dir) if backup_dir is not None else settings.get_backup_dir()
        self.keep_count = keep_count if keep_count is not None else settings.backup_keep_count

    def snapshot(self, destination: str | Path | None = None) -> Path:
        """
        Write a full archive of documents, tags and asset files.

        Args:
            destination: Archive path. Defaults to a timestamped file in backup_dir.

        Returns:
            Path of the written archive

        Raises:
            BackupError: If the archive cannot be written
        """
        if destination is None:
            destination = self.backup_dir / f"backup-{_timestamp()}.zip"
        destination = Path(destination)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with self.database.session() as session:
                documents = [
                    serialize_document(document)
                    for document in DocumentRepository(session).get_all_for_audit()
                ]
                tags = [serialize_tag(tag) for tag in TagRepository(session).get_all()]

            asset_files = self.asset_store.list_files()
            metadata = {
                "format_version": self.FORMAT_VERSION,
                "app_version": __version__,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "document_count": len(documents),
                "tag_count": len(tags),
                "asset_count": len(asset_files),
            }

            with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr(DOCUMENTS_FILE, json.dumps(documents, indent=2))
                archive.writestr(TAGS_FILE, json.dumps(tags, indent=2))
                for file_name in asset_files:
                    archive.write(self.asset_store.path_for(file_name), ASSETS_PREFIX + file_name)
                archive.writestr(METADATA_FILE, json.dumps(metadata, indent=2))
        except Exception as e:
            destination.unlink(missing_ok=True)
            raise BackupError(f"Failed to write backup {destination}: {str(e)}", e) from e

        logger.info(
            "Wrote backup %s (%d document(s), %d asset file(s))",
            destination,
            metadata["document_count"],
            metadata["asset_count"],
        )
        return destination

    def restore(self, archive_path: str | Path) -> RestoreResult:
        """
        Replace the vault contents with an archive.

        Every row is rebuilt and validated before anything is touched. A
        safety snapshot of the current data is then written. The store
        connection is closed while asset files are replaced and reopened
        before rows are reloaded. If the reload fails, the database rolls
        back and the asset files are put back from the safety snapshot.

        Raises:
            BackupError: If the archive is invalid or the restore fails
        """
        archive_path = Path(archive_path)
        documents_data, tags_data, asset_files = self._read_archive(archive_path)
        tags, documents = self._build_rows(tags_data, documents_data)

        safety_backup = self.snapshot(self.backup_dir / f"{SAFETY_BACKUP_PREFIX}{_timestamp()}.zip")

        try:
            self.database.close()
            try:
                self.asset_store.replace_all(asset_files)
            finally:
                self.database.open()

            with self.database.session() as session:
                self._reload(session, tags, documents)
        except Exception as e:
            self._put_back_assets(safety_backup)
            raise BackupError(
                f"Restore from {archive_path} failed; previous data saved to {safety_backup}: {str(e)}",
                e,
            ) from e

        logger.info(
            "Restored %d document(s), %d tag(s), %d asset file(s) from %s",
            len(documents_data),
            len(tags_data),
            len(asset_files),
            archive_path,
        )
        return RestoreResult(
            document_count=len(documents_data),
            tag_count=len(tags_data),
            asset_count=len(asset_files),
            safety_backup=safety_backup,
        )

    def create_auto_backup(self) -> Path:
        """Write a timestamped automatic backup and prune old ones."""
        path = self.snapshot(self.backup_dir / f"{AUTO_BACKUP_PREFIX}{_timestamp()}.zip")
        self.clean_old_backups()
        return path

    def clean_old_backups(self, keep_count: int | None = None) -> list[str]:
        """
        Delete automatic backups beyond the newest keep_count.

        Returns:
            Names of deleted archives
        """
        if keep_count is None:
            keep_count = self.keep_count
        if not self.backup_dir.exists():
            return []

        # Names embed a sortable UTC timestamp
        auto_backups = sorted(
            (path for path in self.backup_dir.glob(f"{AUTO_BACKUP_PREFIX}*.zip") if path.is_file()),
            key=lambda path: path.name,
            reverse=True,
        )
        removed = []
        for path in auto_backups[keep_count:]:
            path.unlink()
            removed.append(path.name)
            logger.info("Deleted old backup %s", path.name)
        return removed

    def list_backups(self) -> list[BackupInfo]:
        """Backups in backup_dir, newest first."""
        if not self.backup_dir.exists():
            return []
        backups = []
        for path in self.backup_dir.glob("*.zip"):
            stats = path.stat()
            backups.append(
                BackupInfo(
                    name=path.name,
                    size=stats.st_size,
                    modified=datetime.fromtimestamp(stats.st_mtime, timezone.utc),
                    is_auto=path.name.startswith(AUTO_BACKUP_PREFIX),
                )
            )
        return sorted(backups, key=lambda info: (info.modified, info.name), reverse=True)

    def get_backup_stats(self) -> dict[str, Any]:
        backups = self.list_backups()
        return {
            "count": len(backups),
            "total_size": sum(info.size for info in backups),
            "backups": backups,
        }

    def delete_backup(self, filename: str) -> bool:
        """
        Delete one backup archive by file name.

        Returns:
            True if deleted, False if no such backup exists

        Raises:
            ValidationError: If filename could escape backup_dir
        """
        if not filename or ".." in filename or "/" in filename or "\\" in filename:
            raise ValidationError(f"Invalid backup filename: {filename!r}", "filename")
        path = self.backup_dir / filename
        if not path.is_file():
            return False
        path.unlink()
        logger.info("Deleted backup %s", filename)
        return True

    def _read_archive(
        self, archive_path: Path
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[tuple[str, bytes]]]:
        if not archive_path.is_file() or not zipfile.is_zipfile(archive_path):
            raise BackupError(f"Not a backup archive: {archive_path}")

        try:
            with zipfile.ZipFile(archive_path) as archive:
                names = archive.namelist()
                if DOCUMENTS_FILE not in names or TAGS_FILE not in names:
                    raise BackupError(f"Invalid backup: {DOCUMENTS_FILE} or {TAGS_FILE} not found")
                documents_data = json.loads(archive.read(DOCUMENTS_FILE))
                tags_data = json.loads(archive.read(TAGS_FILE))
                if not isinstance(documents_data, list) or not isinstance(tags_data, list):
                    raise BackupError(f"Invalid backup: {DOCUMENTS_FILE} and {TAGS_FILE} must hold lists")
                asset_files = _asset_entries(archive)
        except VaultError:
            raise
        except (zipfile.BadZipFile, json.JSONDecodeError, OSError) as e:
            raise BackupError(f"Cannot read backup {archive_path}: {str(e)}", e) from e

        for file_name, _ in asset_files:
            try:
                AssetStore.validate_file_name(file_name)
            except ValidationError as e:
                raise BackupError(f"Invalid asset entry in backup: {file_name!r}", e) from e
        return documents_data, tags_data, asset_files

    def _build_rows(
        self,
        tags_data: list[dict[str, Any]],
        documents_data: list[dict[str, Any]],
    ) -> tuple[list[Tag], list[Document]]:
        """Rebuild every archived row, raising BackupError for anything the store would reject."""
        try:
            tags = [deserialize_tag(item) for item in tags_data]
            tags_by_id = {tag.id: tag for tag in tags}
            documents = [deserialize_document(item, tags_by_id) for item in documents_data]
        except ValidationError as e:
            raise BackupError(f"Invalid backup row: {e}", e) from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise BackupError(f"Malformed backup row: {str(e)}", e) from e

        if any(not tag.id or tag.name is None for tag in tags):
            raise BackupError("Invalid backup: every tag needs an id and a name")
        if any(not document.id or document.title is None for document in documents):
            raise BackupError("Invalid backup: every document needs an id and a title")

        _require_unique("tag id", [tag.id for tag in tags])
        _require_unique("tag name", [tag.name for tag in tags])
        _require_unique("document id", [document.id for document in documents])
        _require_unique(
            "asset id", [asset.id for document in documents for asset in document.assets if asset.id]
        )
        _require_unique(
            "infobox id",
            [field.id for document in documents for field in document.infobox if field.id],
        )
        return tags, documents

    def _reload(self, session: Session, tags: list[Tag], documents: list[Document]) -> None:
        session.execute(delete(document_tags))
        session.execute(delete(InfoboxField))
        session.execute(delete(Asset))
        session.execute(delete(Document))
        session.execute(delete(Tag))

        session.add_all(tags)
        session.add_all(documents)
        session.flush()

    def _put_back_assets(self, safety_backup: Path) -> None:
        """Return the asset directory to the state saved in the safety snapshot."""
        try:
            with zipfile.ZipFile(safety_backup) as archive:
                files = _asset_entries(archive)
            self.asset_store.replace_all(files)
        except (OSError, zipfile.BadZipFile, VaultError):
            logger.exception("Could not put asset files back from %s", safety_backup)
            return
        logger.warning("Restore failed; asset files put back from %s", safety_backup)


def _asset_entries(archive: zipfile.ZipFile) -> list[tuple[str, bytes]]:
    return [
        (name[len(ASSETS_PREFIX):], archive.read(name))
        for name in archive.namelist()
        if name.startswith(ASSETS_PREFIX) and not name.endswith("/")
    ]


def _require_unique(label: str, values: list[str]) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise BackupError(f"Invalid backup: duplicate {label} {value!r}")
        seen.add(value)
