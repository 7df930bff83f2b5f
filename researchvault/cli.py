"""Research Vault CLI: schema setup, integrity audits and backups.

Entry point registered in pyproject.toml:
    researchvault = "researchvault.cli:app"

Usage:
    researchvault init-db
    researchvault verify [--json]
    researchvault backup [DESTINATION] [--auto]
    researchvault restore ARCHIVE [--yes]

Exit codes for ``verify``: 0 clean, 1 findings reported, 2 scan aborted.
"""

import json
from pathlib import Path
from typing import Optional

import typer

from researchvault.config import get_settings
from researchvault.exceptions import BackupError
from researchvault.logging_config import configure_logging
from researchvault.services.backup_service import BackupArchiver
from researchvault.services.integrity_service import IntegrityVerifier
from researchvault.storage.asset_store import AssetStore
from researchvault.storage.database import Database

app = typer.Typer(
    name="researchvault",
    help="Research Vault CLI: integrity audits and backups",
    no_args_is_help=True,
)

EXIT_FINDINGS = 1
EXIT_ABORTED = 2


def _open_store() -> tuple[Database, AssetStore]:
    settings = get_settings()
    return Database(settings.get_database_url()), AssetStore(settings.get_asset_dir())


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings())


@app.command("init-db")
def init_db() -> None:
    """Create database tables."""
    database, _ = _open_store()
    try:
        database.create_tables()
    finally:
        database.close()
    typer.echo("Database tables created")


@app.command()
def verify(
    as_json: bool = typer.Option(False, "--json", help="Print findings as JSON"),
) -> None:
    """Re-verify every document fingerprint and asset file."""
    database, asset_store = _open_store()
    try:
        with database.session() as session:
            result = IntegrityVerifier(session, asset_store).verify_all()
    finally:
        database.close()

    if result.aborted:
        typer.echo(f"Integrity scan aborted: {result.error}", err=True)
        raise typer.Exit(code=EXIT_ABORTED)

    if as_json:
        typer.echo(json.dumps([finding.to_dict() for finding in result.findings], indent=2))
    else:
        for finding in result.findings:
            typer.echo(f"{finding.document_id}\t{finding.reason.value}\t{finding.title}")
        typer.echo(f"Checked {result.scanned} document(s), {len(result.findings)} finding(s)")

    if result.findings:
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command()
def backup(
    destination: Optional[Path] = typer.Argument(None, help="Archive path to write"),
    auto: bool = typer.Option(False, "--auto", help="Write a rotated automatic backup"),
) -> None:
    """Write a backup archive of documents and asset files."""
    if auto and destination is not None:
        raise typer.BadParameter(
            "--auto writes to the configured backup directory; omit DESTINATION",
            param_hint="DESTINATION",
        )

    database, asset_store = _open_store()
    archiver = BackupArchiver(database, asset_store)
    try:
        path = archiver.create_auto_backup() if auto else archiver.snapshot(destination)
    except BackupError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    finally:
        database.close()
    typer.echo(f"Backup written to {path}")


@app.command()
def restore(
    archive: Path = typer.Argument(..., help="Backup archive to restore"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Replace all documents and asset files with a backup archive."""
    if not yes:
        typer.confirm("This replaces all current data. Continue?", abort=True)

    database, asset_store = _open_store()
    archiver = BackupArchiver(database, asset_store)
    try:
        result = archiver.restore(archive)
    except BackupError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    finally:
        database.close()
    typer.echo(
        f"Restored {result.document_count} document(s), {result.tag_count} tag(s), "
        f"{result.asset_count} asset file(s); previous data saved to {result.safety_backup}"
    )
