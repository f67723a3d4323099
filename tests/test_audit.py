import pytest

from src.lifecycle.audit import SIGNED_CLIENT, SIGNED_DEVELOPER, AuditLogWriter
from src.lifecycle.errors import AuthorizationError


def test_signatures_write_audit_entries(service, contract, access_code, db, clock):
    service.sign_as_client(contract.contract_ref, "sig", access_code(), ip_address="41.186.0.10")
    service.sign_as_developer(contract.contract_ref, "Egreed", acting_user_id="dev-1", ip_address="10.1.1.1")

    client_entry, developer_entry = db.list_signature_audits(contract.id)
    assert client_entry.action == SIGNED_CLIENT
    assert client_entry.client_id == contract.client_id
    assert client_entry.user_id is None
    assert client_entry.ip_address == "41.186.0.10"
    assert client_entry.created_at == clock()

    assert developer_entry.action == SIGNED_DEVELOPER
    assert developer_entry.user_id == "dev-1"
    assert developer_entry.client_id is None


def test_failed_signature_writes_no_audit(service, contract, db):
    with pytest.raises(AuthorizationError):
        service.sign_as_client(contract.contract_ref, "sig", "BADCODE234")
    assert db.list_signature_audits(contract.id) == []


def test_record_keeps_metadata(db, contract, clock):
    writer = AuditLogWriter(db, clock=clock)
    entry = writer.record(contract.id, SIGNED_CLIENT, client_id="c-1", metadata={"user_agent": "pytest"})
    assert entry.audit_metadata == {"user_agent": "pytest"}
    assert [e.id for e in writer.history(contract.id)] == [entry.id]


def test_record_failure_is_raised(contract, clock):
    class BrokenDB:
        def add_signature_audit(self, **kwargs):
            raise RuntimeError("disk full")

    writer = AuditLogWriter(BrokenDB(), clock=clock)
    with pytest.raises(RuntimeError):
        writer.record(contract.id, SIGNED_DEVELOPER, user_id="dev-1")
