"""Contract, party and signing-ledger models for the multi-party workflow."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hylian.db import Base


class ContractStatus(enum.Enum):
    pending = "pending"
    completed = "completed"


class SignerStatus(enum.Enum):
    pending = "pending"
    signed = "signed"


class Contract(Base):
    """A signable instance of a Document.

    ``version`` is bumped by every signing transaction, so two transactions
    that evaluated completion against the same snapshot cannot both commit.
    """

    __tablename__ = "contracts"
    __table_args__ = (Index("ix_contracts_document", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ContractStatus] = mapped_column(
        Enum(ContractStatus), nullable=False, default=ContractStatus.pending
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    document = relationship("Document", back_populates="contracts")
    signers = relationship(
        "ContractSigner",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractSigner.created_at",
    )

    __mapper_args__ = {"version_id_col": version}


class ContractSigner(Base):
    """One invited party on a contract."""

    __tablename__ = "contract_signers"
    __table_args__ = (
        UniqueConstraint("contract_id", "email", name="uq_contract_signers_contract_email"),
        Index("ix_contract_signers_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("signer_roles.id")
    )
    # Stored lower-cased so the (contract, email) constraint is case-insensitive.
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[SignerStatus] = mapped_column(
        Enum(SignerStatus), nullable=False, default=SignerStatus.pending
    )
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    contract = relationship("Contract", back_populates="signers")
    role = relationship("SignerRole")
    signatures = relationship(
        "Signature",
        back_populates="signer",
        cascade="all, delete-orphan",
        order_by="Signature.created_at",
    )


class Signature(Base):
    """Immutable ledger entry for one completed signing action."""

    __tablename__ = "signatures"
    __table_args__ = (Index("ix_signatures_signer", "signer_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    signer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contract_signers.id", ondelete="CASCADE"), nullable=False
    )
    signature_data: Mapped[str] = mapped_column(Text, nullable=False)
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    position_x: Mapped[float] = mapped_column(Float, nullable=False)
    position_y: Mapped[float] = mapped_column(Float, nullable=False)
    width: Mapped[float] = mapped_column(Float, nullable=False)
    height: Mapped[float] = mapped_column(Float, nullable=False)

    # Digital fingerprint
    ip_address: Mapped[str | None] = mapped_column(String(45))  # IPv6 max length
    user_agent: Mapped[str | None] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    signer = relationship("ContractSigner", back_populates="signatures")
