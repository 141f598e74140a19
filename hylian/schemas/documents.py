"""Pydantic schemas for documents, signer roles and signature fields."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from hylian.models.documents import DocumentStatus, FieldType


class DocumentRead(BaseModel):
    id: UUID
    owner_id: str
    original_filename: str
    file_size: int
    mime_type: str
    checksum: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DocumentStatusRead(BaseModel):
    document_id: UUID
    status: DocumentStatus
    field_count: int
    contract_count: int


class SignerRoleCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=200)
    signer_email: EmailStr | None = None
    signer_name: str | None = Field(None, max_length=200)


class SignerRoleRead(BaseModel):
    id: UUID
    document_id: UUID
    label: str
    signer_email: str | None
    signer_name: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SignatureFieldCreate(BaseModel):
    """Field placement. Either ``role_id`` or ``signer_email`` identifies the signer."""

    document_id: UUID
    field_type: FieldType = FieldType.signature
    role_id: UUID | None = None
    signer_email: EmailStr | None = None
    signer_name: str | None = Field(None, max_length=200)
    label: str = Field(default="", max_length=200)
    is_required: bool = True
    page_number: int
    position_x: float
    position_y: float
    width: float
    height: float


class SignatureFieldUpdate(BaseModel):
    field_type: FieldType | None = None
    role_id: UUID | None = None
    label: str | None = Field(None, max_length=200)
    is_required: bool | None = None
    page_number: int | None = None
    position_x: float | None = None
    position_y: float | None = None
    width: float | None = None
    height: float | None = None


class SignatureFieldRead(BaseModel):
    id: UUID
    document_id: UUID
    role_id: UUID
    field_type: FieldType
    label: str
    is_required: bool
    page_number: int
    position_x: float
    position_y: float
    width: float
    height: float
    signer_email: str | None
    signer_name: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
