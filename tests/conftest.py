"""Pytest fixtures for the contract lifecycle and payment tests."""

from datetime import datetime

import pytest

from src.database.postgres import PostgresDB
from src.integrations.clients.mocks.mobile_money import MobileMoneyStubClient
from src.integrations.clients.registry import PaymentProviderRegistry
from src.integrations.email.email_service import ConsoleEmailSender
from src.lifecycle.clock import FrozenClock
from src.lifecycle.notifications import NotificationTrigger
from src.lifecycle.payments import PaymentOrchestrator
from src.lifecycle.state_machine import ContractService

ISSUER_ID = "dev-1"


@pytest.fixture
def db():
    """In-memory PostgresDB stub for tests."""
    return PostgresDB()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 14, 9, 30))


@pytest.fixture
def outbox():
    return ConsoleEmailSender()


@pytest.fixture
def notifier(outbox):
    return NotificationTrigger(outbox, "https://app.egreedtech.org")


@pytest.fixture
def service(db, notifier, clock):
    return ContractService(db, notifier, clock=clock)


@pytest.fixture
def client_record(db):
    return db.create_client(full_name="Aline Uwase", email="aline@example.rw", phone="250788123456")


@pytest.fixture
def contract(service, client_record):
    return service.create_contract(
        issuer_id=ISSUER_ID,
        client_id=client_record.id,
        title="Smart meter rollout",
        amount=1500.0,
        currency="usd",
    )


@pytest.fixture
def access_code(outbox):
    """Access code from the most recent contract email."""

    def _latest() -> str:
        body = outbox.outbox[-1].body
        return body.split("enter this access code: ", 1)[1].split()[0]

    return _latest


@pytest.fixture
def registry():
    return PaymentProviderRegistry({
        "momo:mtn": MobileMoneyStubClient("mtn"),
        "momo:airtel": MobileMoneyStubClient("airtel"),
        "momo:mpesa": MobileMoneyStubClient("mpesa"),
    })


@pytest.fixture
def orchestrator(db, registry, service, clock):
    return PaymentOrchestrator(db, registry, service, clock=clock)
