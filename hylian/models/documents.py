"""Document template models: uploaded files, signer roles and field placements."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, deferred, mapped_column, relationship

from hylian.db import Base


class DocumentStatus(enum.Enum):
    draft = "draft"
    templated = "templated"
    contracted = "contracted"


class FieldType(enum.Enum):
    signature = "signature"
    date = "date"
    text = "text"
    initials = "initials"


class Document(Base):
    """An uploaded file plus its template-authoring metadata.

    The bytes live in the blob store under ``storage_key``; ``file_content``
    is an optional cache used when the store no longer has the object.
    """

    __tablename__ = "documents"
    __table_args__ = (Index("ix_documents_owner_created", "owner_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    checksum: Mapped[str | None] = mapped_column(String(64))
    file_content: Mapped[bytes | None] = deferred(mapped_column(LargeBinary))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    roles = relationship(
        "SignerRole",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="SignerRole.created_at",
    )
    fields = relationship(
        "SignatureField",
        back_populates="document",
        cascade="all, delete-orphan",
    )
    contracts = relationship("Contract", back_populates="document")

    def __repr__(self) -> str:
        return f"<Document {self.id}: {self.original_filename}>"


class SignerRole(Base):
    """A named signer slot on a template, bound to a concrete party per contract."""

    __tablename__ = "signer_roles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    # Intended signer hint captured while templating; not a party reference.
    signer_email: Mapped[str | None] = mapped_column(String(255))
    signer_name: Mapped[str | None] = mapped_column(String(200))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    document = relationship("Document", back_populates="roles")
    fields = relationship("SignatureField", back_populates="role", cascade="all, delete")


class SignatureField(Base):
    """Placeholder on a document page reserved for one signer role.

    Geometry is expressed in percentages of the page (0-100) so placements are
    resolution independent.
    """

    __tablename__ = "signature_fields"
    __table_args__ = (
        Index("ix_signature_fields_layout", "document_id", "page_number", "position_y", "position_x"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("signer_roles.id", ondelete="CASCADE"), nullable=False
    )
    field_type: Mapped[FieldType] = mapped_column(
        Enum(FieldType), nullable=False, default=FieldType.signature
    )
    label: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    position_x: Mapped[float] = mapped_column(Float, nullable=False)
    position_y: Mapped[float] = mapped_column(Float, nullable=False)
    width: Mapped[float] = mapped_column(Float, nullable=False)
    height: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    document = relationship("Document", back_populates="fields")
    role = relationship("SignerRole", back_populates="fields")

    @property
    def signer_email(self) -> str | None:
        return self.role.signer_email if self.role else None

    @property
    def signer_name(self) -> str | None:
        return self.role.signer_name if self.role else None
