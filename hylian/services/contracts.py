"""Contracts and the Party Registry.

A contract and its signers are created in one transaction: either every
ContractSigner row is visible together with the Contract, or nothing is.
Invitations go out only after that transaction has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from hylian.config import settings
from hylian.exceptions import Conflict, Forbidden, InvalidPartyList, NotFound, Unauthorized
from hylian.models.contracts import Contract, ContractSigner, SignerStatus
from hylian.models.documents import Document, SignatureField, SignerRole
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.contracts import ContractCreate, SignerInput
from hylian.services.common import coerce_uuid, get_or_404, normalize_email
from hylian.services.identity import ensure_owner, is_owner

logger = logging.getLogger(__name__)


def _roles_with_fields(db: Session, document_id) -> set:
    # Only roles that still own a field must be bound to a signer.
    rows = (
        db.query(SignatureField.role_id)
        .filter(SignatureField.document_id == document_id)
        .distinct()
        .all()
    )
    return {row[0] for row in rows}


class PartyRegistry:
    """Owns the set of signers attached to a contract."""

    @staticmethod
    def validate(
        signers: Sequence[SignerInput],
        roles: Sequence[SignerRole],
        required_role_ids: set | None = None,
    ) -> list[dict]:
        """Check a signer list and bind it to the document's signer roles.

        Every role in ``required_role_ids`` (all roles when omitted) must be
        bound to exactly one signer; other roles may be bound or left out.

        Raises:
            InvalidPartyList: empty list, duplicate email (case-insensitive),
                unknown or duplicated role, or a role left unassigned
        """
        if not signers:
            raise InvalidPartyList("At least one signer is required")

        role_ids = {role.id for role in roles}
        seen_emails: set[str] = set()
        bound_roles: set = set()
        entries: list[dict] = []
        for signer in signers:
            email = normalize_email(str(signer.email))
            if email in seen_emails:
                raise InvalidPartyList(f"Duplicate signer email: {email}")
            seen_emails.add(email)
            role_id = coerce_uuid(signer.role_id)
            if role_id is not None:
                if role_id not in role_ids:
                    raise InvalidPartyList("Signer role does not belong to this document")
                if role_id in bound_roles:
                    raise InvalidPartyList("Each signer role can be assigned only once")
                bound_roles.add(role_id)
            entries.append(
                {
                    "email": email,
                    "name": signer.name.strip(),
                    "user_id": signer.user_id,
                    "role_id": role_id,
                }
            )

        if required_role_ids is None:
            required_role_ids = role_ids
        unbound = [
            role for role in roles if role.id in required_role_ids and role.id not in bound_roles
        ]
        if unbound:
            labels = ", ".join(sorted(role.label for role in unbound))
            raise InvalidPartyList(
                f"Every signer role must be assigned to a signer (unassigned: {labels})"
            )
        return entries

    @staticmethod
    def provision(db: Session, contract: Contract, entries: Sequence[dict]) -> list[ContractSigner]:
        """Attach one pending ContractSigner per entry.

        Does not commit; the caller commits together with the contract.
        """
        signers = [
            ContractSigner(
                email=entry["email"],
                name=entry["name"],
                user_id=entry.get("user_id"),
                role_id=entry.get("role_id"),
                status=SignerStatus.pending,
            )
            for entry in entries
        ]
        contract.signers.extend(signers)
        return signers


class Contracts:
    """Service for contract instances."""

    @staticmethod
    def create(
        db: Session,
        caller: CallerIdentity,
        payload: ContractCreate,
        allow_multiple_contracts_per_document: bool | None = None,
        send_invitations: bool = True,
    ) -> Contract:
        """Create a contract and provision its parties atomically.

        Raises:
            NotFound: unknown document
            Forbidden: caller does not own the document
            InvalidPartyList: bad signer list
            Conflict: document already has a contract and the policy forbids more
        """
        if allow_multiple_contracts_per_document is None:
            allow_multiple_contracts_per_document = (
                settings.allow_multiple_contracts_per_document
            )
        document_key = coerce_uuid(payload.document_id)
        # Row lock serializes concurrent contract creation on the same document.
        document = (
            db.query(Document).filter(Document.id == document_key).with_for_update().first()
        )
        if not document:
            raise NotFound("Document not found")
        ensure_owner(document.owner_id, caller)

        roles = (
            db.query(SignerRole)
            .filter(SignerRole.document_id == document.id)
            .order_by(SignerRole.created_at.asc())
            .all()
        )
        entries = PartyRegistry.validate(
            payload.signers, roles, required_role_ids=_roles_with_fields(db, document.id)
        )

        if not allow_multiple_contracts_per_document:
            existing = (
                db.query(func.count(Contract.id))
                .filter(Contract.document_id == document.id)
                .scalar()
            )
            if existing:
                raise Conflict("Document already has a contract")

        contract = Contract(
            document_id=document.id,
            title=payload.title.strip(),
            description=payload.description,
            created_by=caller.id,
        )
        db.add(contract)
        PartyRegistry.provision(db, contract, entries)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise InvalidPartyList("Signer list violates party uniqueness") from exc
        except Exception:
            db.rollback()
            raise
        db.refresh(contract)
        logger.info(
            "Contract %s created on document %s with %d signers",
            contract.id,
            document.id,
            len(entries),
        )

        if send_invitations:
            from hylian.services.invitations import invitations

            invitations.dispatch(db, contract)
        return contract

    @staticmethod
    def _load(db: Session, contract_id: str) -> Contract:
        return get_or_404(
            db,
            Contract,
            contract_id,
            "Contract not found",
            options=[selectinload(Contract.signers), selectinload(Contract.document)],
        )

    @staticmethod
    def is_party(contract: Contract, caller: CallerIdentity) -> bool:
        email = normalize_email(caller.email)
        return any(
            (signer.user_id and signer.user_id == caller.id) or signer.email == email
            for signer in contract.signers
        )

    @staticmethod
    def ensure_access(
        contract: Contract, caller: CallerIdentity | None, signer_id: str | None = None
    ) -> None:
        """Owner, admin and parties may read a contract; so may a signing link."""
        if caller is not None and (
            is_owner(contract.document.owner_id, caller) or Contracts.is_party(contract, caller)
        ):
            return
        if signer_id is not None:
            try:
                signer_key = coerce_uuid(signer_id)
            except (TypeError, ValueError):
                signer_key = None
            if any(signer.id == signer_key for signer in contract.signers):
                return
        if caller is None:
            raise Unauthorized("Unauthorized")
        raise Forbidden("Access denied")

    @staticmethod
    def get(
        db: Session,
        contract_id: str,
        caller: CallerIdentity | None = None,
        signer_id: str | None = None,
    ) -> Contract:
        contract = Contracts._load(db, contract_id)
        Contracts.ensure_access(contract, caller, signer_id)
        return contract

    @staticmethod
    def list_for_caller(
        db: Session, caller: CallerIdentity, limit: int = 100, offset: int = 0
    ) -> list[Contract]:
        """Contracts on the caller's documents plus those the caller must sign."""
        party_contracts = select(ContractSigner.contract_id).where(
            or_(
                ContractSigner.user_id == caller.id,
                ContractSigner.email == normalize_email(caller.email),
            )
        )
        return (
            db.query(Contract)
            .options(selectinload(Contract.signers))
            .join(Document, Contract.document_id == Document.id)
            .filter(or_(Document.owner_id == caller.id, Contract.id.in_(party_contracts)))
            .order_by(Contract.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def status(
        db: Session,
        contract_id: str,
        caller: CallerIdentity | None = None,
        signer_id: str | None = None,
    ) -> dict:
        contract = Contracts.get(db, contract_id, caller, signer_id)
        signed = [s for s in contract.signers if s.status == SignerStatus.signed]
        return {
            "contract_id": contract.id,
            "status": contract.status,
            "completed_at": contract.completed_at,
            "total_signers": len(contract.signers),
            "signed_signers": len(signed),
            "signers": list(contract.signers),
        }


party_registry = PartyRegistry()
contracts = Contracts()
