"""Runs the lifecycle against the SQLAlchemy data layer on a SQLite file."""

from datetime import datetime, timedelta

import pytest

from src.database.postgres_real import PostgresDB, _normalize_connection_string
from src.integrations.email.email_service import ConsoleEmailSender
from src.lifecycle.clock import FrozenClock
from src.lifecycle.errors import ConcurrentUpdateError, NotFoundError
from src.lifecycle.notifications import NotificationTrigger
from src.lifecycle.state_machine import ContractService


@pytest.fixture
def sql_db(tmp_path):
    db = PostgresDB(connection_string=f"sqlite:///{tmp_path / 'contracts.db'}")
    db.create_tables()
    return db


@pytest.fixture
def sql_service(sql_db):
    sender = ConsoleEmailSender()
    service = ContractService(
        sql_db,
        NotificationTrigger(sender, "https://app.test"),
        clock=FrozenClock(datetime(2025, 6, 1, 12, 0)),
    )
    service.outbox = sender.outbox
    return service


def test_normalize_connection_string():
    assert _normalize_connection_string("  'postgresql://u:p@h/db' ") == "postgresql+psycopg://u:p@h/db"
    assert _normalize_connection_string("psql 'postgresql://u@h/db'") == "postgresql+psycopg://u@h/db"
    assert _normalize_connection_string("sqlite:///x.db") == "sqlite:///x.db"


def test_sign_and_pay_round_trip(sql_db, sql_service):
    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw")
    contract = sql_service.create_contract(issuer_id="dev-1", client_id=client.id, title="Gateway install", amount=800)
    assert contract.contract_ref == "EG-IoT-2025-001"

    code = sql_db.list_access_codes(contract.id)[0].access_code
    assert code in sql_service.outbox[-1].body

    sql_service.sign_as_client(contract.contract_ref, "Jean", code, ip_address="127.0.0.1")
    sql_service.sign_as_developer(contract.contract_ref, "Egreed", acting_user_id="dev-1")
    sql_service.update_payment_status(contract.contract_ref, "PAID", transaction_id="tx-9")
    done = sql_service.complete(contract.contract_ref)

    assert done.status == "COMPLETED"
    assert done.version == 5
    assert [a.action for a in sql_db.list_signature_audits(contract.id)] == ["signed_client", "signed_developer"]


def test_email_failure_leaves_no_rows(sql_db):
    class BrokenSender:
        def send(self, message):
            raise ConnectionError("smtp down")

    service = ContractService(sql_db, NotificationTrigger(BrokenSender(), "https://app.test"))
    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw")

    with pytest.raises(ConnectionError):
        service.create_contract(issuer_id="dev-1", client_id=client.id, title="T", amount=1)

    assert sql_db.list_contracts() == []


def test_update_contract_version_check(sql_db, sql_service):
    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw")
    contract = sql_service.create_contract(issuer_id="dev-1", client_id=client.id, title="T", amount=1)

    sql_db.update_contract(contract.contract_ref, {"title": "First"}, expected_version=1)
    with pytest.raises(ConcurrentUpdateError):
        sql_db.update_contract(contract.contract_ref, {"title": "Second"}, expected_version=1)
    with pytest.raises(NotFoundError):
        sql_db.update_contract("EG-IoT-2025-404", {"title": "x"}, expected_version=1)

    assert sql_db.get_contract_by_ref(contract.contract_ref).title == "First"


def test_access_code_expiry_query(sql_db, sql_service):
    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw")
    contract = sql_service.create_contract(issuer_id="dev-1", client_id=client.id, title="T", amount=1)
    code = sql_db.list_access_codes(contract.id)[0].access_code

    now = datetime(2025, 6, 1, 12, 0)
    assert sql_db.find_valid_access_code(contract.contract_ref, code, now) is not None
    assert sql_db.find_valid_access_code(contract.contract_ref, code, now + timedelta(days=7)) is None
    assert sql_db.get_latest_valid_access_code(contract.id, now + timedelta(days=8)) is None


def test_payments_are_listed_per_contract(sql_db, sql_service):
    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw")
    contract = sql_service.create_contract(issuer_id="dev-1", client_id=client.id, title="T", amount=1)
    now = datetime(2025, 6, 1, 12, 0)
    payment = sql_db.create_payment(
        contract_id=contract.id,
        provider="STRIPE",
        method="STRIPE",
        transaction_ref="EGREED-x-1",
        transaction_id="pi_1",
        amount=1.0,
        currency="USD",
        status="pending",
        created_at=now,
        updated_at=now,
    )
    sql_db.update_payment_status(payment.id, "completed")

    (listed,) = sql_db.list_payments(contract.id)
    assert listed.status == "completed"
    assert sql_db.get_payment_by_transaction_id("pi_1").id == payment.id


def test_users_and_clients(sql_db):
    user = sql_db.create_user(full_name="Egreed Developer", email="dev@egreedtech.org", user_id="dev-1")
    assert sql_db.get_user("dev-1").email == user.email
    assert sql_db.get_user("missing") is None

    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw", phone="250788000111")
    assert sql_db.get_client(client.id).phone == "250788000111"


def test_duplicate_contract_ref_is_a_conflict(sql_db, sql_service, monkeypatch):
    client = sql_db.create_client(full_name="Jean Bosco", email="jean@example.rw")
    sql_service.create_contract(issuer_id="dev-1", client_id=client.id, title="First", amount=1)
    sent = len(sql_service.outbox)
    monkeypatch.setattr(sql_db, "count_contracts_with_ref_prefix", lambda prefix: 0)

    with pytest.raises(ConcurrentUpdateError):
        sql_service.create_contract(issuer_id="dev-1", client_id=client.id, title="Second", amount=1)

    assert [c.title for c in sql_db.list_contracts()] == ["First"]
    assert len(sql_service.outbox) == sent
