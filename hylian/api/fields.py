from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hylian.api.deps import get_current_caller, get_db
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.documents import (
    SignatureFieldCreate,
    SignatureFieldRead,
    SignatureFieldUpdate,
)
from hylian.services.fields import signature_fields as fields_service

router = APIRouter(prefix="/signature-fields", tags=["signature-fields"])


@router.get("/document/{document_id}", response_model=list[SignatureFieldRead])
def list_signature_fields(
    document_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return fields_service.list(db, caller, document_id)


@router.post("", response_model=SignatureFieldRead, status_code=status.HTTP_201_CREATED)
def define_signature_field(
    payload: SignatureFieldCreate,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return fields_service.define(db, caller, payload)


@router.put("/{field_id}", response_model=SignatureFieldRead)
def update_signature_field(
    field_id: str,
    payload: SignatureFieldUpdate,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return fields_service.update(db, caller, field_id, payload)


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_signature_field(
    field_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    fields_service.delete(db, caller, field_id)
