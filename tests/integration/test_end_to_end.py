"""End-to-end integration tests for Research Vault workflows."""

import pytest

pytestmark = pytest.mark.integration

from researchvault.services.asset_service import AssetService
from researchvault.services.document_service import DocumentService
from researchvault.services.integrity_service import IntegrityReason, IntegrityVerifier
from researchvault.services.tag_service import TagService


class TestDocumentWorkflow:
    """Test complete authoring and audit workflows."""

    def test_author_edit_and_audit(self, temp_db, asset_store, make_file):
        """Test a document stays verifiable through a series of edits."""
        asset_service = AssetService(asset_store)

        with temp_db.session() as session:
            service = DocumentService(session)
            verifier = IntegrityVerifier(session, asset_store)

            doc = service.create_document(
                title="Operation Overlord",
                content="D-Day...",
                tag_names=["WW2", "1944"],
                author="historian",
            )
            fingerprints = [doc.fingerprint]

            photo = asset_service.ingest(make_file("beach.jpg", b"beach photo"))
            doc = service.add_assets(doc.id, [photo])
            fingerprints.append(doc.fingerprint)

            doc = service.update_document(
                doc.id, infobox=[("Date", "6 June 1944"), ("Commander", "Eisenhower")]
            )
            fingerprints.append(doc.fingerprint)

            service.update_asset_caption(doc.assets[0].id, "Omaha Beach")
            doc = service.update_document(doc.id, tag_names=["1944", "WW2", "Invasion"])
            fingerprints.append(doc.fingerprint)

            assert len(set(fingerprints)) == len(fingerprints)
            assert verifier.verify_all().is_clean

            doc_id = doc.id
            asset_path = doc.assets[0].asset_path

        # Out-of-band edit, then an attachment swap on disk
        temp_db.execute_raw_sql(
            "UPDATE documents SET content = :content WHERE id = :id",
            {"content": "D-Day, revised without review", "id": doc_id},
        )
        with temp_db.session() as session:
            result = IntegrityVerifier(session, asset_store).verify_all()
            assert [(f.document_id, f.reason) for f in result.findings] == [
                (doc_id, IntegrityReason.METADATA_TAMPERED)
            ]

        asset_store.path_for(asset_path).write_bytes(b"swapped photo")
        with temp_db.session() as session:
            result = IntegrityVerifier(session, asset_store).verify_all()
            assert [f.reason for f in result.findings] == [IntegrityReason.ASSET_TAMPERED]

    def test_shared_asset_across_documents(self, temp_db, asset_store):
        """Test two documents can reference the same stored file."""
        asset_service = AssetService(asset_store)
        first_upload = asset_service.ingest_bytes(b"shared map", "map.png")
        second_upload = asset_service.ingest_bytes(b"shared map", "copy-of-map.png")
        assert first_upload.content_hash == second_upload.content_hash

        with temp_db.session() as session:
            service = DocumentService(session)
            service.create_document(title="First", assets=[first_upload])
            service.create_document(title="Second", assets=[second_upload])
            assert IntegrityVerifier(session, asset_store).verify_all().is_clean

        assert len(asset_store.list_files()) == 1

        asset_store.delete(first_upload.stored_file_name)
        with temp_db.session() as session:
            result = IntegrityVerifier(session, asset_store).verify_all()
            assert {f.title for f in result.findings} == {"First", "Second"}
            assert {f.reason for f in result.findings} == {IntegrityReason.ASSET_MISSING}

    def test_tag_maintenance_with_refresh(self, temp_db, asset_store):
        """Test tag rename and delete keep fingerprints current when asked to."""
        with temp_db.session() as session:
            documents = DocumentService(session)
            tags = TagService(session)

            documents.create_document(title="Normandy", tag_names=["ww2", "france"])
            documents.create_document(title="Arnhem", tag_names=["ww2", "netherlands"])

            tags.rename_tag("ww2", "second world war", refresh_fingerprints=True)
            france = next(t for t in tags.list_tags() if t["name"] == "france")
            assert tags.delete_tag(france["id"], refresh_fingerprints=True) == 1

            assert IntegrityVerifier(session, asset_store).verify_all().is_clean
            assert [(t["name"], t["count"]) for t in tags.list_tags()] == [
                ("second world war", 2),
                ("netherlands", 1),
            ]
