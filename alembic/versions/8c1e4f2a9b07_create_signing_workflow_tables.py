"""create signing workflow tables

Revision ID: 8c1e4f2a9b07
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision = "8c1e4f2a9b07"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    field_type = sa.Enum("signature", "date", "text", "initials", name="fieldtype")
    contract_status = sa.Enum("pending", "completed", name="contractstatus")
    signer_status = sa.Enum("pending", "signed", name="signerstatus")

    op.create_table(
        "documents",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(length=100), nullable=False),
        sa.Column("storage_key", sa.String(length=1024), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("checksum", sa.String(length=64), nullable=True),
        sa.Column("file_content", sa.LargeBinary(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_documents_owner_created", "documents", ["owner_id", "created_at"])

    op.create_table(
        "signer_roles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "document_id",
            UUID(as_uuid=True),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column("signer_email", sa.String(length=255), nullable=True),
        sa.Column("signer_name", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "signature_fields",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "document_id",
            UUID(as_uuid=True),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "role_id",
            UUID(as_uuid=True),
            sa.ForeignKey("signer_roles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field_type", field_type, nullable=False),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column("position_x", sa.Float(), nullable=False),
        sa.Column("position_y", sa.Float(), nullable=False),
        sa.Column("width", sa.Float(), nullable=False),
        sa.Column("height", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_signature_fields_layout",
        "signature_fields",
        ["document_id", "page_number", "position_y", "position_x"],
    )

    op.create_table(
        "contracts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("document_id", UUID(as_uuid=True), sa.ForeignKey("documents.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", contract_status, nullable=False),
        sa.Column("created_by", sa.String(length=100), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_contracts_document", "contracts", ["document_id"])

    op.create_table(
        "contract_signers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "contract_id",
            UUID(as_uuid=True),
            sa.ForeignKey("contracts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role_id", UUID(as_uuid=True), sa.ForeignKey("signer_roles.id"), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=True),
        sa.Column("status", signer_status, nullable=False),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("contract_id", "email", name="uq_contract_signers_contract_email"),
    )
    op.create_index("ix_contract_signers_email", "contract_signers", ["email"])

    op.create_table(
        "signatures",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "signer_id",
            UUID(as_uuid=True),
            sa.ForeignKey("contract_signers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("signature_data", sa.Text(), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column("position_x", sa.Float(), nullable=False),
        sa.Column("position_y", sa.Float(), nullable=False),
        sa.Column("width", sa.Float(), nullable=False),
        sa.Column("height", sa.Float(), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_signatures_signer", "signatures", ["signer_id"])


def downgrade() -> None:
    op.drop_index("ix_signatures_signer", table_name="signatures")
    op.drop_table("signatures")
    op.drop_index("ix_contract_signers_email", table_name="contract_signers")
    op.drop_table("contract_signers")
    op.drop_index("ix_contracts_document", table_name="contracts")
    op.drop_table("contracts")
    op.drop_index("ix_signature_fields_layout", table_name="signature_fields")
    op.drop_table("signature_fields")
    op.drop_table("signer_roles")
    op.drop_index("ix_documents_owner_created", table_name="documents")
    op.drop_table("documents")
    sa.Enum(name="signerstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="contractstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="fieldtype").drop(op.get_bind(), checkfirst=True)
