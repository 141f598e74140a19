"""Field Catalog: signer roles and signature-field placements on a document.

Fields are authored before any contract exists, so a field points at a
template ``SignerRole`` instead of a party. Contract creation later binds each
role to exactly one signer.
"""

from __future__ import annotations

import logging
import math

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from hylian.exceptions import Conflict, InvalidInput, NotFound
from hylian.models.contracts import Contract
from hylian.models.documents import Document, SignatureField, SignerRole
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.documents import (
    SignatureFieldCreate,
    SignatureFieldUpdate,
    SignerRoleCreate,
)
from hylian.services.common import coerce_uuid, get_or_404, normalize_email
from hylian.services.identity import ensure_owner

logger = logging.getLogger(__name__)

PAGE_EXTENT = 100.0


def validate_geometry(
    page_number: int, position_x: float, position_y: float, width: float, height: float
) -> None:
    """Reject placements that are not fully inside the page.

    Out-of-bounds boxes are rejected rather than clamped so the stored
    geometry is always exactly what the author submitted.
    """
    if page_number is None or page_number < 1:
        raise InvalidInput("Page number must be a positive integer")
    if not all(math.isfinite(value) for value in (position_x, position_y, width, height)):
        raise InvalidInput("Field position and size must be finite numbers")
    if width <= 0 or height <= 0:
        raise InvalidInput("Field width and height must be positive")
    if position_x < 0 or position_y < 0:
        raise InvalidInput("Field position must not be negative")
    if position_x + width > PAGE_EXTENT or position_y + height > PAGE_EXTENT:
        raise InvalidInput("Field must lie within the page (0-100 on both axes)")


def _ensure_not_contracted(db: Session, document_id) -> None:
    contract_count = (
        db.query(func.count(Contract.id)).filter(Contract.document_id == document_id).scalar()
    )
    if contract_count:
        raise Conflict("Document template cannot change once a contract exists")


def _owned_document(db: Session, caller: CallerIdentity, document_id) -> Document:
    document = get_or_404(db, Document, document_id, "Document not found")
    ensure_owner(document.owner_id, caller)
    return document


class SignerRoles:
    @staticmethod
    def create(
        db: Session, caller: CallerIdentity, document_id: str, payload: SignerRoleCreate
    ) -> SignerRole:
        document = _owned_document(db, caller, document_id)
        _ensure_not_contracted(db, document.id)
        role = SignerRole(
            document_id=document.id,
            label=payload.label.strip(),
            signer_email=normalize_email(payload.signer_email) if payload.signer_email else None,
            signer_name=payload.signer_name,
        )
        db.add(role)
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def list(db: Session, caller: CallerIdentity, document_id: str) -> list[SignerRole]:
        document = _owned_document(db, caller, document_id)
        return (
            db.query(SignerRole)
            .filter(SignerRole.document_id == document.id)
            .order_by(SignerRole.created_at.asc())
            .all()
        )

    @staticmethod
    def delete(db: Session, caller: CallerIdentity, document_id: str, role_id: str) -> None:
        """Remove a role together with the fields placed for it."""
        document = _owned_document(db, caller, document_id)
        role = get_or_404(db, SignerRole, role_id, "Signer role not found")
        if role.document_id != document.id:
            raise NotFound("Signer role not found")
        _ensure_not_contracted(db, document.id)
        db.delete(role)
        db.commit()
        logger.info("Signer role %s deleted from document %s", role_id, document.id)

    @staticmethod
    def resolve(
        db: Session,
        document: Document,
        role_id=None,
        signer_email: str | None = None,
        signer_name: str | None = None,
    ) -> SignerRole:
        """Find the role a field belongs to, creating one for a new signer email."""
        if role_id is not None:
            try:
                role = db.get(SignerRole, coerce_uuid(role_id))
            except (TypeError, ValueError):
                role = None
            if not role or role.document_id != document.id:
                raise InvalidInput("Signer role does not belong to this document")
            return role
        if not signer_email:
            raise InvalidInput("A signer role or signer email is required")
        email = normalize_email(signer_email)
        role = (
            db.query(SignerRole)
            .filter(SignerRole.document_id == document.id)
            .filter(func.lower(SignerRole.signer_email) == email)
            .first()
        )
        if role:
            return role
        role = SignerRole(
            document_id=document.id,
            label=(signer_name or email).strip(),
            signer_email=email,
            signer_name=signer_name,
        )
        db.add(role)
        db.flush()
        return role


class SignatureFields:
    """Service for signature field placements."""

    @staticmethod
    def define(db: Session, caller: CallerIdentity, payload: SignatureFieldCreate) -> SignatureField:
        """Create a field on a document the caller owns.

        The signer identity on the field is not checked against any contract
        party, since none may exist yet.
        """
        document = _owned_document(db, caller, payload.document_id)
        validate_geometry(
            payload.page_number,
            payload.position_x,
            payload.position_y,
            payload.width,
            payload.height,
        )
        _ensure_not_contracted(db, document.id)
        role = SignerRoles.resolve(
            db,
            document,
            role_id=payload.role_id,
            signer_email=payload.signer_email,
            signer_name=payload.signer_name,
        )
        field = SignatureField(
            document_id=document.id,
            role_id=role.id,
            field_type=payload.field_type,
            label=payload.label or "",
            is_required=payload.is_required,
            page_number=payload.page_number,
            position_x=payload.position_x,
            position_y=payload.position_y,
            width=payload.width,
            height=payload.height,
        )
        db.add(field)
        db.commit()
        db.refresh(field)
        logger.info("Field %s defined on document %s", field.id, document.id)
        return field

    @staticmethod
    def list(db: Session, caller: CallerIdentity, document_id: str) -> list[SignatureField]:
        document = _owned_document(db, caller, document_id)
        return (
            db.query(SignatureField)
            .options(selectinload(SignatureField.role))
            .filter(SignatureField.document_id == document.id)
            .order_by(
                SignatureField.page_number.asc(),
                SignatureField.position_y.asc(),
                SignatureField.position_x.asc(),
            )
            .all()
        )

    @staticmethod
    def _owned_field(db: Session, caller: CallerIdentity, field_id: str) -> SignatureField:
        field = get_or_404(db, SignatureField, field_id, "Signature field not found")
        ensure_owner(field.document.owner_id, caller)
        return field

    @staticmethod
    def update(
        db: Session, caller: CallerIdentity, field_id: str, payload: SignatureFieldUpdate
    ) -> SignatureField:
        field = SignatureFields._owned_field(db, caller, field_id)
        data = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None
        }
        geometry = {
            key: data.get(key, getattr(field, key))
            for key in ("page_number", "position_x", "position_y", "width", "height")
        }
        validate_geometry(**geometry)
        _ensure_not_contracted(db, field.document_id)
        if "role_id" in data:
            role = SignerRoles.resolve(db, field.document, role_id=data.pop("role_id"))
            field.role_id = role.id
        for key, value in data.items():
            setattr(field, key, value)
        db.commit()
        db.refresh(field)
        return field

    @staticmethod
    def delete(db: Session, caller: CallerIdentity, field_id: str) -> None:
        field = SignatureFields._owned_field(db, caller, field_id)
        _ensure_not_contracted(db, field.document_id)
        db.delete(field)
        db.commit()


signer_roles = SignerRoles()
signature_fields = SignatureFields()
