from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from hylian.api.deps import get_current_caller, get_db
from hylian.config import settings
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.documents import (
    DocumentRead,
    DocumentStatusRead,
    SignerRoleCreate,
    SignerRoleRead,
)
from hylian.services.documents import documents as documents_service
from hylian.services.fields import signer_roles as signer_roles_service

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/upload", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document(
    document: UploadFile = File(...),
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    # One byte past the limit is enough to reject an oversized file.
    data = await document.read(settings.document_max_size_bytes + 1)
    return documents_service.upload(db, caller, document.filename, document.content_type, data)


@router.get("", response_model=list[DocumentRead])
def list_documents(
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return documents_service.list_for_owner(
        db, caller, order_by=order_by, order_dir=order_dir, limit=limit, offset=offset
    )


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return documents_service.get(db, caller, document_id)


@router.get("/{document_id}/status", response_model=DocumentStatusRead)
def get_document_status(
    document_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return documents_service.status(db, caller, document_id)


@router.get("/{document_id}/file")
def get_document_file(
    document_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    file = documents_service.get_file(db, caller, document_id)
    quoted = file.filename.replace('"', "")
    return Response(
        content=file.data,
        media_type=file.content_type,
        headers={"Content-Disposition": f'inline; filename="{quoted}"'},
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    documents_service.delete(db, caller, document_id)


@router.post(
    "/{document_id}/roles",
    response_model=SignerRoleRead,
    status_code=status.HTTP_201_CREATED,
)
def create_signer_role(
    document_id: str,
    payload: SignerRoleCreate,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return signer_roles_service.create(db, caller, document_id, payload)


@router.get("/{document_id}/roles", response_model=list[SignerRoleRead])
def list_signer_roles(
    document_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return signer_roles_service.list(db, caller, document_id)


@router.delete("/{document_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_signer_role(
    document_id: str,
    role_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    signer_roles_service.delete(db, caller, document_id, role_id)
