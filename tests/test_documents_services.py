"""Tests for document upload, access and derived status."""

import pytest

from hylian.exceptions import Conflict, Forbidden, InvalidInput, NotFound
from hylian.models.documents import Document, DocumentStatus, SignatureField, SignerRole
from hylian.schemas.auth import CallerIdentity
from hylian.services.documents import derive_status
from hylian.services.documents import documents as documents_service
from hylian.services.object_storage import ObjectStorageError
from tests.conftest import PDF_BYTES


class TestUpload:
    def test_upload_stores_blob_and_metadata(self, db_session, owner, blob_store):
        document = documents_service.upload(
            db_session, owner, "../../etc/Lease.pdf", "application/pdf", PDF_BYTES
        )
        assert document.owner_id == owner.id
        assert document.original_filename == "Lease.pdf"
        assert document.file_size == len(PDF_BYTES)
        assert document.storage_key == f"documents/{document.id}.pdf"
        assert blob_store.objects[document.storage_key][0] == PDF_BYTES
        assert len(document.checksum) == 64

    def test_upload_can_skip_cached_bytes(self, db_session, owner, blob_store):
        document = documents_service.upload(
            db_session, owner, "a.pdf", "application/pdf", PDF_BYTES, store_bytes=False
        )
        assert document.file_content is None

    @pytest.mark.parametrize(
        ("content_type", "data"),
        [
            ("image/png", PDF_BYTES),
            ("application/pdf", b""),
            ("application/pdf", b"GIF89a not a pdf"),
        ],
    )
    def test_upload_rejects_bad_files(self, db_session, owner, blob_store, content_type, data):
        with pytest.raises(InvalidInput):
            documents_service.upload(db_session, owner, "x.pdf", content_type, data)
        assert blob_store.objects == {}
        assert db_session.query(Document).count() == 0

    def test_upload_rejects_oversized_file(self, db_session, owner, blob_store, monkeypatch):
        from hylian.services import documents as documents_module

        class _Limits:
            allowed_document_types = {"application/pdf"}
            document_max_size_bytes = 16
            store_document_bytes = True

        monkeypatch.setattr(documents_module, "settings", _Limits())
        with pytest.raises(InvalidInput, match="maximum"):
            documents_service.upload(db_session, owner, "x.pdf", "application/pdf", PDF_BYTES)

    def test_storage_failure_leaves_no_record(self, db_session, owner, blob_store):
        blob_store.fail_uploads = True
        with pytest.raises(ObjectStorageError):
            documents_service.upload(db_session, owner, "x.pdf", "application/pdf", PDF_BYTES)
        assert db_session.query(Document).count() == 0


class TestAccess:
    def test_get_requires_owner_or_admin(self, db_session, document, stranger, admin):
        with pytest.raises(Forbidden):
            documents_service.get(db_session, stranger, str(document.id))
        assert documents_service.get(db_session, admin, str(document.id)).id == document.id

    def test_get_unknown_or_malformed_id(self, db_session, owner):
        with pytest.raises(NotFound):
            documents_service.get(db_session, owner, "not-a-uuid")
        with pytest.raises(NotFound):
            documents_service.get(db_session, owner, "0b0c8a4e-3c57-4d3c-9d1a-2f0c0a0c0a0c")

    def test_list_only_returns_own_documents(self, db_session, owner, stranger, blob_store):
        documents_service.upload(db_session, owner, "a.pdf", "application/pdf", PDF_BYTES)
        documents_service.upload(db_session, owner, "b.pdf", "application/pdf", PDF_BYTES)
        documents_service.upload(db_session, stranger, "c.pdf", "application/pdf", PDF_BYTES)

        mine = documents_service.list_for_owner(
            db_session, owner, order_by="original_filename", order_dir="asc"
        )
        assert [doc.original_filename for doc in mine] == ["a.pdf", "b.pdf"]

    def test_list_rejects_unknown_ordering(self, db_session, owner):
        with pytest.raises(InvalidInput):
            documents_service.list_for_owner(db_session, owner, order_by="checksum")


class TestFile:
    def test_owner_reads_blob(self, db_session, owner, document):
        file = documents_service.get_file(db_session, owner, str(document.id))
        assert file.data == PDF_BYTES
        assert file.content_type == "application/pdf"
        assert file.filename == "agreement.pdf"

    def test_falls_back_to_cached_bytes(self, db_session, owner, document, blob_store):
        blob_store.objects.clear()
        file = documents_service.get_file(db_session, owner, str(document.id))
        assert file.data == PDF_BYTES

    def test_missing_everywhere_is_not_found(self, db_session, owner, blob_store):
        document = documents_service.upload(
            db_session, owner, "a.pdf", "application/pdf", PDF_BYTES, store_bytes=False
        )
        blob_store.objects.clear()
        with pytest.raises(NotFound):
            documents_service.get_file(db_session, owner, str(document.id))

    def test_signer_may_read_file(self, db_session, contract, stranger):
        alice = CallerIdentity(id="alice-id", email="Alice@Example.com")
        file = documents_service.get_file(db_session, alice, str(contract.document_id))
        assert file.data == PDF_BYTES
        with pytest.raises(Forbidden):
            documents_service.get_file(db_session, stranger, str(contract.document_id))


class TestDelete:
    def test_delete_removes_template_and_blob(self, db_session, owner, templated_document, blob_store):
        key = templated_document.storage_key
        document_id = templated_document.id
        documents_service.delete(db_session, owner, str(document_id))

        assert db_session.get(Document, document_id) is None
        assert db_session.query(SignatureField).count() == 0
        assert db_session.query(SignerRole).count() == 0
        assert key not in blob_store.objects

    def test_delete_survives_blob_failure(self, db_session, owner, document, blob_store):
        blob_store.fail_deletes = True
        documents_service.delete(db_session, owner, str(document.id))
        assert db_session.query(Document).count() == 0

    def test_delete_with_contract_conflicts(self, db_session, owner, contract):
        with pytest.raises(Conflict):
            documents_service.delete(db_session, owner, str(contract.document_id))

    def test_delete_requires_owner(self, db_session, document, stranger):
        with pytest.raises(Forbidden):
            documents_service.delete(db_session, stranger, str(document.id))


class TestStatus:
    def test_derive_status(self):
        assert derive_status(0, 0) == DocumentStatus.draft
        assert derive_status(2, 0) == DocumentStatus.templated
        assert derive_status(0, 1) == DocumentStatus.contracted
        assert derive_status(3, 2) == DocumentStatus.contracted

    def test_status_follows_template_lifecycle(self, db_session, owner, document):
        status = documents_service.status(db_session, owner, str(document.id))
        assert status["status"] == DocumentStatus.draft
        assert status["field_count"] == 0

    def test_contracted_status(self, db_session, owner, contract):
        status = documents_service.status(db_session, owner, str(contract.document_id))
        assert status["status"] == DocumentStatus.contracted
        assert status["field_count"] == 2
        assert status["contract_count"] == 1
