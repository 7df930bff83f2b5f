"""Content-addressed byte store for document assets."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable

from researchvault.exceptions import AssetIOError, NotFoundError, ValidationError
from researchvault.hashing import hash_file

logger = logging.getLogger(__name__)


class AssetStore:
    """Directory of asset files named by their content hash.

    Writes are idempotent by name: a file that already exists is never
    rewritten or re-validated, since the name is derived from the bytes.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AssetIOError(f"Cannot create asset directory: {e}", str(self.root), e) from e

    @staticmethod
    def validate_file_name(file_name: str) -> None:
        """Reject names that could escape the store directory."""
        if not isinstance(file_name, str) or not file_name:
            raise ValidationError("Asset file name cannot be empty", "file_name")
        if ".." in file_name or "/" in file_name or "\\" in file_name:
            raise ValidationError(f"Invalid asset file name: {file_name!r}", "file_name")

    def path_for(self, file_name: str) -> Path:
        self.validate_file_name(file_name)
        return self.root / file_name

    def exists(self, file_name: str) -> bool:
        return self.path_for(file_name).is_file()

    def write(self, file_name: str, data: bytes) -> bool:
        """
        Store bytes under file_name unless a file with that name exists.

        Returns:
            True if the file was written, False on a cache hit
        """
        path = self.path_for(file_name)
        if path.exists():
            logger.debug("Asset %s already stored, skipping write", file_name)
            return False
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self.root, prefix=f".{file_name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise AssetIOError(f"Failed to write asset {file_name}: {e}", str(path), e) from e
        return True

    def read(self, file_name: str) -> bytes:
        """
        Read the bytes stored under file_name.

        Raises:
            NotFoundError: If no such file exists
            AssetIOError: If the file exists but cannot be read
        """
        path = self.path_for(file_name)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError("Asset file", file_name) from e
        except OSError as e:
            raise AssetIOError(f"Failed to read asset {file_name}: {e}", str(path), e) from e

    def content_hash(self, file_name: str) -> str:
        """
        Hash the file stored under file_name without loading it whole.

        Raises:
            NotFoundError: If no such file exists
            AssetIOError: If the file exists but cannot be read
        """
        path = self.path_for(file_name)
        try:
            return hash_file(path)
        except FileNotFoundError as e:
            raise NotFoundError("Asset file", file_name) from e
        except OSError as e:
            raise AssetIOError(f"Failed to read asset {file_name}: {e}", str(path), e) from e

    def delete(self, file_name: str) -> bool:
        path = self.path_for(file_name)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_files(self) -> list[str]:
        """Names of all stored asset files, sorted."""
        if not self.root.exists():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_file() and not entry.name.startswith(".")
        )

    def replace_all(self, files: Iterable[tuple[str, bytes]]) -> int:
        """
        Replace the entire store contents with the given (name, bytes) files.

        Returns:
            Number of files written
        """
        files = list(files)
        for file_name, _ in files:
            self.validate_file_name(file_name)
        try:
            if self.root.exists():
                shutil.rmtree(self.root)
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AssetIOError(f"Failed to reset asset directory: {e}", str(self.root), e) from e
        for file_name, data in files:
            self.write(file_name, data)
        return len(files)
