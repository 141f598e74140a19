"""Tests for the signing transaction and contract completion."""

import threading
import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hylian.db import Base
from hylian.exceptions import AlreadySigned, InfrastructureFailure, InvalidInput, SignerNotFound
from hylian.models.contracts import Contract, ContractSigner, ContractStatus, Signature, SignerStatus
from hylian.models.documents import DocumentStatus
from hylian.schemas.contracts import ContractCreate
from hylian.schemas.documents import SignatureFieldCreate
from hylian.services import workflow as workflow_module
from hylian.services.contracts import contracts as contracts_service
from hylian.services.documents import documents as documents_service
from hylian.services.fields import signature_fields as fields_service
from hylian.services.workflow import workflow_controller
from tests.conftest import PDF_BYTES, bind_signers, placement


def _signer(contract, email) -> ContractSigner:
    return next(s for s in contract.signers if s.email == email)


class TestDocumentLifecycle:
    def test_status_moves_from_draft_to_contracted(self, db_session, owner, document):
        assert documents_service.status(db_session, owner, str(document.id))["status"] == (
            DocumentStatus.draft
        )
        fields_service.define(
            db_session,
            owner,
            SignatureFieldCreate(
                document_id=document.id,
                signer_email="a@x.com",
                signer_name="A",
                page_number=1,
                position_x=5.0,
                position_y=5.0,
                width=20.0,
                height=5.0,
            ),
        )
        assert documents_service.status(db_session, owner, str(document.id))["status"] == (
            DocumentStatus.templated
        )
        contracts_service.create(
            db_session,
            owner,
            ContractCreate(
                document_id=document.id,
                title="C",
                signers=bind_signers(db_session, document, ("a@x.com", "A")),
            ),
        )
        assert documents_service.status(db_session, owner, str(document.id))["status"] == (
            DocumentStatus.contracted
        )


class TestSubmitSignature:
    def test_contract_completes_only_on_last_signature(self, db_session, contract):
        alice = _signer(contract, "alice@example.com")
        bob = _signer(contract, "bob@example.com")

        first = workflow_controller.submit_signature(
            db_session, str(alice.id), "data:image/png;base64,AAA", placement(), ip_address="10.0.0.1"
        )
        assert first.completed_contract is False
        assert first.contract.status == ContractStatus.pending
        assert first.contract.completed_at is None
        db_session.refresh(alice)
        assert alice.status == SignerStatus.signed
        assert alice.signed_at is not None

        second = workflow_controller.submit_signature(
            db_session, str(bob.id), "data:image/png;base64,BBB", placement()
        )
        assert second.completed_contract is True
        assert second.contract.status == ContractStatus.completed
        assert second.contract.completed_at is not None
        assert db_session.query(Signature).count() == 2

    def test_signature_records_fingerprint(self, db_session, contract):
        alice = _signer(contract, "alice@example.com")
        outcome = workflow_controller.submit_signature(
            db_session,
            str(alice.id),
            "sig",
            placement(page_number=2),
            ip_address="192.0.2.7",
            user_agent="pytest-agent",
        )
        signature = db_session.get(Signature, outcome.signature.id)
        assert signature.page_number == 2
        assert signature.ip_address == "192.0.2.7"
        assert signature.user_agent == "pytest-agent"

    def test_already_signed_changes_nothing(self, db_session, contract):
        alice = _signer(contract, "alice@example.com")
        workflow_controller.submit_signature(db_session, str(alice.id), "sig", placement())
        db_session.refresh(contract)
        version = contract.version
        signed_at = _signer(contract, "alice@example.com").signed_at

        with pytest.raises(AlreadySigned):
            workflow_controller.submit_signature(db_session, str(alice.id), "again", placement())

        db_session.expire_all()
        contract = db_session.get(Contract, contract.id)
        assert contract.version == version
        assert contract.status == ContractStatus.pending
        assert _signer(contract, "alice@example.com").signed_at == signed_at
        assert db_session.query(Signature).count() == 1

    def test_completed_contract_never_reverts(self, db_session, contract):
        for signer in list(contract.signers):
            workflow_controller.submit_signature(db_session, str(signer.id), "sig", placement())
        db_session.refresh(contract)
        completed_at = contract.completed_at

        with pytest.raises(AlreadySigned):
            workflow_controller.submit_signature(
                db_session, str(contract.signers[0].id), "sig", placement()
            )
        db_session.expire_all()
        contract = db_session.get(Contract, contract.id)
        assert contract.status == ContractStatus.completed
        assert contract.completed_at == completed_at

    def test_unknown_signer(self, db_session, contract):
        with pytest.raises(SignerNotFound):
            workflow_controller.submit_signature(db_session, str(uuid.uuid4()), "sig", placement())
        with pytest.raises(SignerNotFound):
            workflow_controller.submit_signature(db_session, "nope", "sig", placement())

    def test_rejects_empty_data_and_bad_placement(self, db_session, contract):
        alice = _signer(contract, "alice@example.com")
        with pytest.raises(InvalidInput):
            workflow_controller.submit_signature(db_session, str(alice.id), "  ", placement())
        with pytest.raises(InvalidInput):
            workflow_controller.submit_signature(
                db_session, str(alice.id), "sig", placement(position_x=90.0)
            )
        with pytest.raises(InvalidInput):
            workflow_controller.submit_signature(
                db_session, str(alice.id), "sig", placement(width=float("nan"))
            )
        db_session.refresh(alice)
        assert alice.status == SignerStatus.pending
        assert db_session.query(Signature).count() == 0

    def test_lost_race_is_retried(self, db_session, contract, monkeypatch):
        alice = _signer(contract, "alice@example.com")
        original = workflow_module.WorkflowController._sign_once
        calls = {"count": 0}

        def _flaky(*args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 1:
                raise StaleDataError("version mismatch")
            return original(*args, **kwargs)

        monkeypatch.setattr(workflow_module.WorkflowController, "_sign_once", staticmethod(_flaky))
        monkeypatch.setattr(workflow_module, "RETRY_BACKOFF_SECONDS", 0)

        outcome = workflow_controller.submit_signature(db_session, str(alice.id), "sig", placement())
        assert calls["count"] == 2
        assert outcome.signature.signer_id == alice.id

    def test_exhausted_retries_surface_infrastructure_failure(self, db_session, contract, monkeypatch):
        def _always_stale(*args, **kwargs):
            raise StaleDataError("version mismatch")

        monkeypatch.setattr(
            workflow_module.WorkflowController, "_sign_once", staticmethod(_always_stale)
        )
        monkeypatch.setattr(workflow_module, "RETRY_BACKOFF_SECONDS", 0)
        alice = _signer(contract, "alice@example.com")
        with pytest.raises(InfrastructureFailure):
            workflow_controller.submit_signature(
                db_session, str(alice.id), "sig", placement(), max_attempts=3
            )
        db_session.refresh(alice)
        assert alice.status == SignerStatus.pending


@pytest.fixture()
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'signing.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _configure(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


class TestConcurrentSigning:
    def test_simultaneous_last_signatures_complete_once(self, file_engine, owner, blob_store):
        Session = sessionmaker(bind=file_engine, autoflush=False, autocommit=False)
        setup = Session()
        document = documents_service.upload(setup, owner, "c.pdf", "application/pdf", PDF_BYTES)
        contract = contracts_service.create(
            setup,
            owner,
            ContractCreate(
                document_id=document.id,
                title="Race",
                signers=[
                    {"email": "a@x.com", "name": "A"},
                    {"email": "b@x.com", "name": "B"},
                ],
            ),
        )
        contract_id = contract.id
        signer_ids = [str(s.id) for s in contract.signers]
        setup.close()

        barrier = threading.Barrier(len(signer_ids))
        outcomes: list[bool] = []
        errors: list[BaseException] = []
        lock = threading.Lock()

        def _sign(signer_id):
            session = Session()
            try:
                barrier.wait()
                outcome = workflow_controller.submit_signature(
                    session, signer_id, "sig", placement(), max_attempts=20
                )
                with lock:
                    outcomes.append(outcome.completed_contract)
            except BaseException as exc:  # collected and asserted below
                with lock:
                    errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=_sign, args=(sid,)) for sid in signer_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert errors == []
        assert sorted(outcomes) == [False, True]

        check = Session()
        try:
            final = check.get(Contract, contract_id)
            assert final.status == ContractStatus.completed
            assert final.completed_at is not None
            assert all(s.status == SignerStatus.signed for s in final.signers)
            assert check.query(Signature).count() == 2
        finally:
            check.close()
