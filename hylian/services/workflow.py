"""Workflow Controller: the signing transaction.

``submit_signature`` is the only path that moves a signer to ``signed`` and
the only authority that moves a contract to ``completed``. The whole
read-modify-write runs in one transaction scoped to the contract aggregate:

* the contract row and then every signer row of the contract are locked
  (``SELECT ... FOR UPDATE``) so the all-signed check reads a snapshot
  consistent with this transaction's own write;
* the contract row is always updated, and its ``version`` column is checked on
  update, so two transactions that read the same snapshot cannot both commit
  even where row locks are unavailable. The loser is retried from a fresh read.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hylian.config import settings
from hylian.exceptions import (
    AlreadySigned,
    InfrastructureFailure,
    InvalidInput,
    SignerNotFound,
)
from hylian.metrics import CONTRACTS_COMPLETED, SIGNATURES_SUBMITTED, SIGNING_RETRIES
from hylian.models.contracts import (
    Contract,
    ContractSigner,
    ContractStatus,
    Signature,
    SignerStatus,
)
from hylian.schemas.contracts import SignaturePlacement
from hylian.services.common import coerce_uuid
from hylian.services.fields import validate_geometry
from hylian.services.signatures import signing_ledger

logger = logging.getLogger(__name__)

RETRY_BACKOFF_SECONDS = 0.05


@dataclass
class SigningOutcome:
    signature: Signature
    contract: Contract
    # True only for the transaction that moved the contract to completed.
    completed_contract: bool


def _set_signed(signer: ContractSigner, signed_at: datetime) -> None:
    signer.status = SignerStatus.signed
    signer.signed_at = signed_at


def _lock_aggregate(db: Session, contract_id) -> tuple[Contract, list[ContractSigner]]:
    contract = (
        db.query(Contract)
        .filter(Contract.id == contract_id)
        .populate_existing()
        .with_for_update()
        .one()
    )
    signers = (
        db.query(ContractSigner)
        .filter(ContractSigner.contract_id == contract.id)
        .order_by(ContractSigner.id.asc())
        .populate_existing()
        .with_for_update()
        .all()
    )
    return contract, signers


class WorkflowController:
    @staticmethod
    def _sign_once(
        db: Session,
        signer_key,
        signature_data: str,
        placement: SignaturePlacement,
        ip_address: str | None,
        user_agent: str | None,
    ) -> SigningOutcome:
        signer = db.get(ContractSigner, signer_key, populate_existing=True)
        if not signer:
            raise SignerNotFound()
        contract, signers = _lock_aggregate(db, signer.contract_id)
        target = next(s for s in signers if s.id == signer.id)

        signature = signing_ledger.append(
            db, target, signature_data, placement, ip_address=ip_address, user_agent=user_agent
        )
        now = datetime.now(UTC)
        _set_signed(target, now)

        completed_contract = False
        if all(s.status == SignerStatus.signed for s in signers):
            if contract.status != ContractStatus.completed:
                contract.status = ContractStatus.completed
                contract.completed_at = now
                completed_contract = True
        # Always touch the contract so the version check guards the snapshot.
        contract.updated_at = now
        db.flush()
        return SigningOutcome(
            signature=signature, contract=contract, completed_contract=completed_contract
        )

    @staticmethod
    def submit_signature(
        db: Session,
        signer_id: str,
        signature_data: str,
        placement: SignaturePlacement,
        ip_address: str | None = None,
        user_agent: str | None = None,
        max_attempts: int | None = None,
    ) -> SigningOutcome:
        """Record a signature and re-evaluate contract completion atomically.

        Raises:
            SignerNotFound: unknown signer id
            AlreadySigned: the signer already signed; nothing is written
            InvalidInput: empty signature data or bad placement
            InfrastructureFailure: the transaction kept losing races or the
                store was unavailable
        """
        if not signature_data or not signature_data.strip():
            raise InvalidInput("Signature data is required")
        validate_geometry(
            placement.page_number,
            placement.position_x,
            placement.position_y,
            placement.width,
            placement.height,
        )
        try:
            signer_key = coerce_uuid(signer_id)
        except (TypeError, ValueError) as exc:
            SIGNATURES_SUBMITTED.labels(outcome="not_found").inc()
            raise SignerNotFound() from exc

        attempts = max(int(max_attempts or settings.signing_max_attempts), 1)
        for attempt in range(1, attempts + 1):
            try:
                outcome = WorkflowController._sign_once(
                    db, signer_key, signature_data, placement, ip_address, user_agent
                )
                db.commit()
            except SignerNotFound:
                db.rollback()
                SIGNATURES_SUBMITTED.labels(outcome="not_found").inc()
                raise
            except AlreadySigned:
                db.rollback()
                SIGNATURES_SUBMITTED.labels(outcome="already_signed").inc()
                logger.info("Signer %s already signed", signer_key)
                raise
            except (StaleDataError, OperationalError) as exc:
                db.rollback()
                if attempt >= attempts:
                    logger.error(
                        "Signing transaction for signer %s failed after %d attempts: %s",
                        signer_key,
                        attempt,
                        exc,
                    )
                    raise InfrastructureFailure("Could not record signature, try again") from exc
                SIGNING_RETRIES.inc()
                logger.warning(
                    "Signing transaction for signer %s lost a race (attempt %d), retrying",
                    signer_key,
                    attempt,
                )
                time.sleep(RETRY_BACKOFF_SECONDS * attempt)
                continue
            except Exception:
                db.rollback()
                raise

            SIGNATURES_SUBMITTED.labels(outcome="signed").inc()
            logger.info(
                "Signature %s recorded for signer %s on contract %s",
                outcome.signature.id,
                signer_key,
                outcome.contract.id,
            )
            if outcome.completed_contract:
                CONTRACTS_COMPLETED.inc()
                logger.info("Contract %s completed", outcome.contract.id)
            return outcome
        raise InfrastructureFailure("Could not record signature, try again")


workflow_controller = WorkflowController()
