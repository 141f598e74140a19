"""Service for uploaded documents and their derived template status."""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, undefer

from hylian.config import settings
from hylian.exceptions import Conflict, Forbidden, InvalidInput, NotFound
from hylian.models.contracts import Contract, ContractSigner
from hylian.models.documents import Document, DocumentStatus, SignatureField
from hylian.schemas.auth import CallerIdentity
from hylian.services.common import (
    apply_ordering,
    apply_pagination,
    get_or_404,
    normalize_email,
)
from hylian.services.identity import ensure_owner, is_owner
from hylian.services.object_storage import (
    ObjectNotFoundError,
    ObjectStorageError,
    get_document_storage,
)

logger = logging.getLogger(__name__)

MAGIC_BYTES: dict[str, list[bytes]] = {
    "application/pdf": [b"%PDF"],
}
EXTENSIONS = {"application/pdf": ".pdf"}


@dataclass
class DocumentFile:
    data: bytes
    content_type: str
    filename: str


def derive_status(field_count: int, contract_count: int) -> DocumentStatus:
    if contract_count > 0:
        return DocumentStatus.contracted
    if field_count > 0:
        return DocumentStatus.templated
    return DocumentStatus.draft


def _sanitize_filename(filename: str | None) -> str:
    name = Path(filename or "").name.strip()
    return name[:255] or "document.pdf"


class Documents:
    """Service for managing uploaded documents."""

    @staticmethod
    def upload(
        db: Session,
        caller: CallerIdentity,
        filename: str | None,
        content_type: str | None,
        data: bytes,
        store_bytes: bool | None = None,
    ) -> Document:
        """Validate and store an uploaded file, then record its metadata.

        Raises:
            InvalidInput: empty, oversized, wrong type or bad magic bytes
        """
        if store_bytes is None:
            store_bytes = settings.store_document_bytes
        mime_type = (content_type or "").split(";")[0].strip().lower()
        if mime_type not in settings.allowed_document_types:
            raise InvalidInput("Only PDF files are allowed")
        if not data:
            raise InvalidInput("No file uploaded")
        if len(data) > settings.document_max_size_bytes:
            raise InvalidInput("File exceeds maximum allowed size")
        signatures = MAGIC_BYTES.get(mime_type)
        if signatures and not any(data[: len(sig)] == sig for sig in signatures):
            raise InvalidInput("File content does not match its declared type")

        document_id = uuid.uuid4()
        storage_key = f"documents/{document_id}{EXTENSIONS.get(mime_type, '')}"
        storage = get_document_storage()
        storage.upload(storage_key, data, mime_type)

        document = Document(
            id=document_id,
            owner_id=caller.id,
            storage_key=storage_key,
            original_filename=_sanitize_filename(filename),
            file_size=len(data),
            mime_type=mime_type,
            checksum=hashlib.sha256(data).hexdigest(),
            file_content=data if store_bytes else None,
        )
        db.add(document)
        try:
            db.commit()
        except Exception:
            db.rollback()
            try:
                storage.delete(storage_key)
            except ObjectStorageError:
                logger.warning("Could not remove orphaned object %s", storage_key)
            raise
        db.refresh(document)
        logger.info("Document %s uploaded by %s (%d bytes)", document.id, caller.id, len(data))
        return document

    @staticmethod
    def get(db: Session, caller: CallerIdentity, document_id: str) -> Document:
        document = get_or_404(db, Document, document_id, "Document not found")
        ensure_owner(document.owner_id, caller)
        return document

    @staticmethod
    def list_for_owner(
        db: Session,
        caller: CallerIdentity,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 100,
        offset: int = 0,
    ) -> list[Document]:
        query = db.query(Document).filter(Document.owner_id == caller.id)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "original_filename": Document.original_filename,
                "file_size": Document.file_size,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def can_view_file(db: Session, caller: CallerIdentity, document: Document) -> bool:
        if is_owner(document.owner_id, caller):
            return True
        signer = (
            db.query(ContractSigner.id)
            .join(Contract, ContractSigner.contract_id == Contract.id)
            .filter(Contract.document_id == document.id)
            .filter(
                or_(
                    ContractSigner.user_id == caller.id,
                    ContractSigner.email == normalize_email(caller.email),
                )
            )
            .first()
        )
        return signer is not None

    @staticmethod
    def get_file(db: Session, caller: CallerIdentity, document_id: str) -> DocumentFile:
        """Return the document bytes for the owner, an admin or one of its signers.

        The blob store is the source of truth; the cached column is only a
        fallback when the object is missing.
        """
        document = get_or_404(
            db, Document, document_id, "Document not found", options=[undefer(Document.file_content)]
        )
        if not Documents.can_view_file(db, caller, document):
            raise Forbidden("Access denied")
        try:
            stored = get_document_storage().download(document.storage_key)
            data = stored.data
        except ObjectNotFoundError:
            if not document.file_content:
                raise NotFound("Document file not found")
            logger.info(
                "Object %s missing from storage, serving cached bytes", document.storage_key
            )
            data = document.file_content
        return DocumentFile(
            data=data,
            content_type=document.mime_type,
            filename=document.original_filename,
        )

    @staticmethod
    def delete(db: Session, caller: CallerIdentity, document_id: str) -> None:
        """Delete a document with its fields and roles.

        Raises:
            Conflict: if any contract references the document
        """
        document = get_or_404(db, Document, document_id, "Document not found")
        ensure_owner(document.owner_id, caller)
        contract_count = (
            db.query(func.count(Contract.id)).filter(Contract.document_id == document.id).scalar()
        )
        if contract_count:
            raise Conflict("Cannot delete document with existing contracts. Delete contracts first.")
        storage_key = document.storage_key
        db.delete(document)
        db.commit()
        try:
            get_document_storage().delete(storage_key)
        except ObjectStorageError as exc:
            logger.error("Error deleting stored object %s: %s", storage_key, exc)
        logger.info("Document %s deleted by %s", document_id, caller.id)

    @staticmethod
    def counts(db: Session, document_id) -> tuple[int, int]:
        field_count = (
            db.query(func.count(SignatureField.id))
            .filter(SignatureField.document_id == document_id)
            .scalar()
        )
        contract_count = (
            db.query(func.count(Contract.id)).filter(Contract.document_id == document_id).scalar()
        )
        return int(field_count or 0), int(contract_count or 0)

    @staticmethod
    def status(db: Session, caller: CallerIdentity, document_id: str) -> dict:
        document = get_or_404(db, Document, document_id, "Document not found")
        ensure_owner(document.owner_id, caller)
        field_count, contract_count = Documents.counts(db, document.id)
        return {
            "document_id": document.id,
            "status": derive_status(field_count, contract_count),
            "field_count": field_count,
            "contract_count": contract_count,
        }


documents = Documents()
