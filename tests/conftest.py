import os

# Configuration is read at import time; pin it before hylian is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ["SMTP_HOST"] = ""
os.environ["INVITATIONS_ASYNC"] = "false"

import pytest
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hylian.config import settings
from hylian.db import Base
from hylian.models import (  # noqa: F401
    Contract,
    ContractSigner,
    Document,
    Signature,
    SignatureField,
    SignerRole,
)
from hylian.schemas.auth import CallerIdentity
from hylian.schemas.contracts import ContractCreate, SignaturePlacement, SignerInput
from hylian.schemas.documents import SignatureFieldCreate
from hylian.services import documents as documents_module
from hylian.services import email as email_service
from hylian.services.contracts import contracts as contracts_service
from hylian.services.documents import documents as documents_service
from hylian.services.fields import signature_fields as fields_service
from tests.mocks import FakeBlobStore

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blob_store(monkeypatch):
    """In-memory blob store standing in for local disk or S3."""
    store = FakeBlobStore()
    monkeypatch.setattr(documents_module, "get_document_storage", lambda: store)
    return store


@pytest.fixture()
def outbox(monkeypatch):
    """Captured signing invitations; email counts as configured."""
    sent: list[dict] = []

    def _send(to_email, recipient_name, contract_title, signing_link, config=None):
        sent.append(
            {
                "to": to_email,
                "name": recipient_name,
                "title": contract_title,
                "link": signing_link,
            }
        )
        return True

    monkeypatch.setattr(email_service, "email_enabled", lambda config=None: True)
    monkeypatch.setattr(email_service, "send_signing_invitation", _send)
    return sent


@pytest.fixture()
def owner():
    return CallerIdentity(id="owner-1", email="owner@example.com")


@pytest.fixture()
def stranger():
    return CallerIdentity(id="stranger-1", email="stranger@example.com")


@pytest.fixture()
def admin():
    return CallerIdentity(id="admin-1", email="admin@example.com", role="admin")


def make_token(caller: CallerIdentity) -> str:
    return jwt.encode(
        {"sub": caller.id, "email": caller.email, "role": caller.role},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def auth_headers(caller: CallerIdentity) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(caller)}"}


def placement(**overrides) -> SignaturePlacement:
    values = {"page_number": 1, "position_x": 10.0, "position_y": 70.0, "width": 30.0, "height": 10.0}
    values.update(overrides)
    return SignaturePlacement(**values)


@pytest.fixture()
def document(db_session, owner, blob_store):
    return documents_service.upload(
        db_session, owner, "agreement.pdf", "application/pdf", PDF_BYTES
    )


@pytest.fixture()
def templated_document(db_session, owner, document):
    """Document with one signature field for each of two signers."""
    for email, name, y in (
        ("alice@example.com", "Alice", 60.0),
        ("bob@example.com", "Bob", 80.0),
    ):
        fields_service.define(
            db_session,
            owner,
            SignatureFieldCreate(
                document_id=document.id,
                signer_email=email,
                signer_name=name,
                page_number=1,
                position_x=10.0,
                position_y=y,
                width=30.0,
                height=10.0,
            ),
        )
    return document


def bind_signers(db, document, *people: tuple[str, str]) -> list[SignerInput]:
    """Bind each (email, name) to the document role created for that email."""
    db.refresh(document)
    roles = {role.signer_email: role for role in document.roles}
    return [
        SignerInput(email=email, name=name, role_id=roles[email.lower()].id)
        for email, name in people
    ]


@pytest.fixture()
def contract(db_session, owner, templated_document):
    return contracts_service.create(
        db_session,
        owner,
        ContractCreate(
            document_id=templated_document.id,
            title="Service Agreement",
            signers=bind_signers(
                db_session,
                templated_document,
                ("alice@example.com", "Alice"),
                ("bob@example.com", "Bob"),
            ),
        ),
    )
