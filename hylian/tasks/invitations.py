import logging
import time

from hylian.celery_app import celery_app
from hylian.db import SessionLocal
from hylian.models.contracts import Contract
from hylian.services.common import coerce_uuid
from hylian.services.invitations import invitations

logger = logging.getLogger(__name__)


@celery_app.task(name="hylian.tasks.invitations.deliver_contract_invitations")
def deliver_contract_invitations(contract_id: str) -> dict:
    start = time.monotonic()
    session = SessionLocal()
    try:
        contract = session.get(Contract, coerce_uuid(contract_id))
        if not contract:
            logger.warning("Contract %s vanished before invitations were sent", contract_id)
            return {"sent": 0, "failed": 0, "skipped": 0}
        summary = invitations.send_for_contract(session, contract)
        logger.info(
            "Invitations for contract %s delivered in %.2fs: %s",
            contract_id,
            time.monotonic() - start,
            summary,
        )
        return summary
    finally:
        session.close()
