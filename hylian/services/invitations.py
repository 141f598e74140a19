"""Best-effort signing invitations.

Delivery never blocks or rolls back contract creation: every failure is
logged and counted, then dropped.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from hylian.config import settings
from hylian.metrics import INVITATIONS
from hylian.models.contracts import Contract, SignerStatus
from hylian.services import email as email_service

logger = logging.getLogger(__name__)


def signing_link(contract_id, signer_id, base_url: str | None = None) -> str:
    base = (base_url or settings.frontend_url).rstrip("/")
    return f"{base}/sign/{contract_id}?{urlencode({'signer': str(signer_id)})}"


class Invitations:
    @staticmethod
    def send_for_contract(db: Session, contract: Contract) -> dict[str, int]:
        """Send one invitation per pending signer and report the outcome counts."""
        summary = {"sent": 0, "failed": 0, "skipped": 0}
        if not email_service.email_enabled():
            summary["skipped"] = len(contract.signers)
            INVITATIONS.labels(status="skipped").inc(summary["skipped"])
            logger.info(
                "Email service not configured, no invitations sent for contract %s", contract.id
            )
            return summary
        for signer in contract.signers:
            if signer.status != SignerStatus.pending:
                continue
            link = signing_link(contract.id, signer.id)
            try:
                sent = email_service.send_signing_invitation(
                    signer.email, signer.name, contract.title, link
                )
            except Exception:
                logger.exception("Invitation to %s raised during delivery", signer.email)
                sent = False
            status = "sent" if sent else "failed"
            summary[status] += 1
            INVITATIONS.labels(status=status).inc()
            if sent:
                logger.info("Email invitation sent to %s for contract %s", signer.email, contract.id)
            else:
                logger.warning(
                    "Email invitation not sent to %s for contract %s", signer.email, contract.id
                )
        return summary

    @staticmethod
    def dispatch(db: Session, contract: Contract, async_delivery: bool | None = None) -> dict[str, int]:
        if async_delivery is None:
            async_delivery = settings.invitations_async
        try:
            if async_delivery:
                from hylian.tasks.invitations import deliver_contract_invitations

                deliver_contract_invitations.delay(str(contract.id))
                return {"queued": len(contract.signers)}
            return Invitations.send_for_contract(db, contract)
        except Exception:
            logger.exception("Invitation dispatch failed for contract %s", contract.id)
            INVITATIONS.labels(status="failed").inc()
            return {"failed": len(contract.signers)}


invitations = Invitations()
