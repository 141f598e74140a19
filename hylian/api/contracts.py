from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hylian.api.deps import get_current_caller, get_db, get_optional_caller
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.contracts import ContractCreate, ContractRead, ContractStatusRead
from hylian.services.contracts import contracts as contracts_service

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.post("", response_model=ContractRead, status_code=status.HTTP_201_CREATED)
def create_contract(
    payload: ContractCreate,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return contracts_service.create(db, caller, payload)


@router.get("", response_model=list[ContractRead])
def list_contracts(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return contracts_service.list_for_caller(db, caller, limit=limit, offset=offset)


@router.get("/{contract_id}", response_model=ContractRead)
def get_contract(
    contract_id: str,
    signer: str | None = Query(default=None),
    db: Session = Depends(get_db),
    caller: CallerIdentity | None = Depends(get_optional_caller),
):
    return contracts_service.get(db, contract_id, caller, signer)


@router.get("/{contract_id}/status", response_model=ContractStatusRead)
def get_contract_status(
    contract_id: str,
    signer: str | None = Query(default=None),
    db: Session = Depends(get_db),
    caller: CallerIdentity | None = Depends(get_optional_caller),
):
    return contracts_service.status(db, contract_id, caller, signer)
