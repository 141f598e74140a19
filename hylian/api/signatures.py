from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hylian.api.deps import get_db, get_optional_caller
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.contracts import (
    SignatureLedgerEntry,
    SignatureSubmit,
    SigningResult,
)
from hylian.services.signatures import signing_ledger
from hylian.services.workflow import workflow_controller

router = APIRouter(prefix="/signatures", tags=["signatures"])


@router.post("", response_model=SigningResult, status_code=status.HTTP_201_CREATED)
def submit_signature(
    payload: SignatureSubmit,
    request: Request,
    db: Session = Depends(get_db),
):
    # The signer id from the invitation link is the credential here.
    outcome = workflow_controller.submit_signature(
        db,
        str(payload.signer_id),
        payload.signature_data,
        payload,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return {
        "signature": outcome.signature,
        "contract_id": outcome.contract.id,
        "contract_status": outcome.contract.status,
        "contract_completed": outcome.completed_contract,
        "completed_at": outcome.contract.completed_at,
    }


@router.get("/contract/{contract_id}", response_model=list[SignatureLedgerEntry])
def list_contract_signatures(
    contract_id: str,
    signer: str | None = Query(default=None),
    db: Session = Depends(get_db),
    caller: CallerIdentity | None = Depends(get_optional_caller),
):
    return signing_ledger.list_for_contract(db, contract_id, caller, signer)
