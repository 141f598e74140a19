"""Pydantic schemas for contracts, parties and signatures."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from hylian.models.contracts import ContractStatus, SignerStatus


class SignerInput(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    user_id: str | None = Field(None, max_length=100)
    role_id: UUID | None = None


class ContractCreate(BaseModel):
    document_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    signers: list[SignerInput]


class ContractSignerRead(BaseModel):
    id: UUID
    contract_id: UUID
    role_id: UUID | None
    email: str
    name: str
    user_id: str | None
    status: SignerStatus
    signed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ContractRead(BaseModel):
    id: UUID
    document_id: UUID
    title: str
    description: str | None
    status: ContractStatus
    created_by: str
    created_at: datetime
    completed_at: datetime | None
    signers: list[ContractSignerRead]

    model_config = {"from_attributes": True}


class ContractStatusRead(BaseModel):
    contract_id: UUID
    status: ContractStatus
    completed_at: datetime | None
    total_signers: int
    signed_signers: int
    signers: list[ContractSignerRead]


class SignaturePlacement(BaseModel):
    """Where the signature was applied, in page percentages."""

    page_number: int
    position_x: float
    position_y: float
    width: float
    height: float


class SignatureSubmit(SignaturePlacement):
    signer_id: UUID
    signature_data: str = Field(..., min_length=1)


class SignatureRead(BaseModel):
    id: UUID
    signer_id: UUID
    signature_data: str
    page_number: int
    position_x: float
    position_y: float
    width: float
    height: float
    created_at: datetime

    model_config = {"from_attributes": True}


class SignatureLedgerEntry(SignatureRead):
    signer_name: str
    signer_email: str
    signed_at: datetime | None


class SigningResult(BaseModel):
    signature: SignatureRead
    contract_id: UUID
    contract_status: ContractStatus
    contract_completed: bool
    completed_at: datetime | None
