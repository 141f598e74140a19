"""Signing Ledger: append-only record of completed signature events."""

from __future__ import annotations

from sqlalchemy.orm import Session

from hylian.exceptions import AlreadySigned
from hylian.models.contracts import ContractSigner, Signature, SignerStatus
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.contracts import SignaturePlacement
from hylian.services.contracts import contracts as contracts_service
from hylian.services.fields import validate_geometry


class SigningLedger:
    """Ledger entries are written once and never updated or deleted."""

    @staticmethod
    def append(
        db: Session,
        signer: ContractSigner,
        signature_data: str,
        placement: SignaturePlacement,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Signature:
        """Record a signature for a pending signer.

        Does not commit; it runs inside the signing transaction.

        Raises:
            AlreadySigned: the signer is no longer pending (nothing is written)
        """
        if signer.status != SignerStatus.pending:
            raise AlreadySigned()
        validate_geometry(
            placement.page_number,
            placement.position_x,
            placement.position_y,
            placement.width,
            placement.height,
        )
        signature = Signature(
            signer_id=signer.id,
            signature_data=signature_data,
            page_number=placement.page_number,
            position_x=placement.position_x,
            position_y=placement.position_y,
            width=placement.width,
            height=placement.height,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(signature)
        return signature

    @staticmethod
    def list_for_contract(
        db: Session,
        contract_id: str,
        caller: CallerIdentity | None = None,
        signer_id: str | None = None,
    ) -> list[dict]:
        """Ledger entries for a contract with the signer's name, email and signed_at."""
        contract = contracts_service.get(db, contract_id, caller, signer_id)
        rows = (
            db.query(Signature, ContractSigner)
            .join(ContractSigner, Signature.signer_id == ContractSigner.id)
            .filter(ContractSigner.contract_id == contract.id)
            .order_by(Signature.created_at.asc())
            .all()
        )
        return [
            {
                "id": signature.id,
                "signer_id": signature.signer_id,
                "signature_data": signature.signature_data,
                "page_number": signature.page_number,
                "position_x": signature.position_x,
                "position_y": signature.position_y,
                "width": signature.width,
                "height": signature.height,
                "created_at": signature.created_at,
                "signer_name": signer.name,
                "signer_email": signer.email,
                "signed_at": signer.signed_at,
            }
            for signature, signer in rows
        ]


signing_ledger = SigningLedger()
