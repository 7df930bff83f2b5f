"""Basic usage example for Research Vault."""

from researchvault.config import get_settings
from researchvault.logging_config import configure_logging
from researchvault.services import (
    AssetService,
    BackupArchiver,
    DocumentService,
    IntegrityVerifier,
)
from researchvault.storage import AssetStore, Database


def main():
    """Create a document, audit the store and write a backup."""
    settings = get_settings()
    configure_logging(settings)

    # Initialize database and asset store (SQLite and ./assets by default)
    db = Database()
    db.create_tables()
    store = AssetStore(settings.get_asset_dir())
    assets = AssetService(store)

    with db.session() as session:
        documents = DocumentService(session)

        photo = assets.ingest_bytes(b"placeholder image bytes", "omaha-beach.jpg")
        doc = documents.create_document(
            title="Operation Overlord",
            content="The Allied landings in Normandy began on 6 June 1944.",
            tag_names=["WW2", "1944"],
            assets=[photo],
            infobox=[("Date", "6 June 1944"), ("Location", "Normandy")],
        )
        print(f"Created document: {doc.title} (ID: {doc.id})")
        print(f"Fingerprint: {doc.fingerprint}")

        doc = documents.update_document(doc.id, tag_names=["1944", "WW2", "Invasion"])
        print(f"Fingerprint after tag edit: {doc.fingerprint}")

        result = IntegrityVerifier(session, store).verify_all()
        result.raise_for_abort()
        print(f"Checked {result.scanned} document(s), {len(result.findings)} finding(s)")
        for finding in result.findings:
            print(f"  {finding.document_id}: {finding.reason.value}")

    path = BackupArchiver(db, store).create_auto_backup()
    print(f"Backup written to {path}")

    db.close()


if __name__ == "__main__":
    main()
