"""
Lightweight in-memory PostgresDB replacement for local development.

This provides the same interface as src.database.postgres_real so the API
and the lifecycle services can run without a real database. It is NOT
intended for production use.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import hmac
import uuid

from src.database.models import ContractPaymentStatus, ContractStatus
from src.lifecycle.clock import utcnow
from src.lifecycle.errors import ConcurrentUpdateError, NotFoundError


@dataclass
class Client:
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class User:
    id: str
    full_name: str
    email: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Contract:
    id: str
    contract_ref: str
    client_id: str
    developer_id: str
    title: str
    amount: float
    currency: str = "USD"
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: str = ContractStatus.DRAFT.value
    client_signature: Optional[str] = None
    client_signed_at: Optional[datetime] = None
    developer_signature: Optional[str] = None
    developer_signed_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    payment_status: str = ContractPaymentStatus.PENDING.value
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ContractAccess:
    id: str
    contract_id: str
    access_code: str
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Payment:
    id: str
    contract_id: Optional[str]
    provider: str
    method: str
    transaction_ref: str
    transaction_id: str
    amount: float
    currency: str
    status: str = "pending"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class SignatureAudit:
    id: str
    contract_id: str
    action: str
    client_id: Optional[str] = None
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    audit_metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


class PostgresDB:
    """
    In-memory stand‑in for a Postgres-backed data access layer.

    Getters return copies so callers never hold a live reference into the
    store; every contract change goes through update_contract.
    """

    def __init__(self) -> None:
        self._clients: Dict[str, Client] = {}
        self._users: Dict[str, User] = {}
        self._contracts: Dict[str, Contract] = {}
        self._contract_ids_by_ref: Dict[str, str] = {}
        self._access_codes: List[ContractAccess] = []
        self._payments: Dict[str, Payment] = {}
        self._audits: List[SignatureAudit] = []

    # ------------------------------------------------------------------ #
    # Schema / lifecycle
    # ------------------------------------------------------------------ #
    def create_tables(self) -> None:
        """
        No-op for the in-memory implementation. Kept for compatibility
        with the startup hook in `src/api/main.py`.
        """
        return None

    # ------------------------------------------------------------------ #
    # Clients & users
    # ------------------------------------------------------------------ #
    def create_client(self, *, full_name: str, email: str, phone: Optional[str] = None) -> Client:
        client = Client(id=str(uuid.uuid4()), full_name=full_name, email=email, phone=phone)
        self._clients[client.id] = client
        return replace(client)

    def get_client(self, client_id: str) -> Optional[Client]:
        client = self._clients.get(str(client_id))
        return replace(client) if client else None

    def create_user(self, *, full_name: str, email: str, user_id: Optional[str] = None) -> User:
        user = User(id=user_id or str(uuid.uuid4()), full_name=full_name, email=email)
        self._users[user.id] = user
        return replace(user)

    def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(str(user_id))
        return replace(user) if user else None

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #
    def count_contracts_with_ref_prefix(self, prefix: str) -> int:
        return sum(1 for ref in self._contract_ids_by_ref if ref.startswith(prefix))

    def create_contract(
        self,
        *,
        access_code: str,
        access_expires_at: datetime,
        before_commit: Optional[Callable[[Contract, ContractAccess], None]] = None,
        **fields: Any,
    ) -> Contract:
        """
        Store a contract and its first access code together. ``before_commit``
        runs after both are built but before either is visible; if it raises,
        nothing is stored.
        """
        if fields["contract_ref"] in self._contract_ids_by_ref:
            raise ConcurrentUpdateError(f"Contract reference {fields['contract_ref']} was taken by another request; retry")

        contract = Contract(id=str(uuid.uuid4()), **fields)
        access = ContractAccess(
            id=str(uuid.uuid4()),
            contract_id=contract.id,
            access_code=access_code,
            expires_at=access_expires_at,
            created_at=contract.created_at,
        )
        if before_commit is not None:
            before_commit(replace(contract), replace(access))

        self._contracts[contract.id] = contract
        self._contract_ids_by_ref[contract.contract_ref] = contract.id
        self._access_codes.append(access)
        return replace(contract)

    def get_contract_by_ref(self, contract_ref: str) -> Optional[Contract]:
        contract_id = self._contract_ids_by_ref.get(contract_ref)
        if not contract_id:
            return None
        return replace(self._contracts[contract_id])

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        contract = self._contracts.get(str(contract_id))
        return replace(contract) if contract else None

    def list_contracts(self) -> List[Contract]:
        contracts = sorted(self._contracts.values(), key=lambda c: c.created_at, reverse=True)
        return [replace(c) for c in contracts]

    def update_contract(self, contract_ref: str, updates: Dict[str, Any], *, expected_version: int) -> Contract:
        contract_id = self._contract_ids_by_ref.get(contract_ref)
        if not contract_id:
            raise NotFoundError()
        contract = self._contracts[contract_id]
        if contract.version != expected_version:
            raise ConcurrentUpdateError()

        for key, value in updates.items():
            if not hasattr(contract, key):
                raise AttributeError(f"Contract has no field '{key}'")
            setattr(contract, key, value)
        contract.version = expected_version + 1
        return replace(contract)

    # ------------------------------------------------------------------ #
    # Access codes
    # ------------------------------------------------------------------ #
    def add_access_code(self, *, contract_id: str, access_code: str, expires_at: datetime,
                        created_at: Optional[datetime] = None) -> ContractAccess:
        access = ContractAccess(
            id=str(uuid.uuid4()),
            contract_id=contract_id,
            access_code=access_code,
            expires_at=expires_at,
            created_at=created_at or utcnow(),
        )
        self._access_codes.append(access)
        return replace(access)

    def find_valid_access_code(self, contract_ref: str, access_code: str, now: datetime) -> Optional[ContractAccess]:
        contract_id = self._contract_ids_by_ref.get(contract_ref)
        if not contract_id:
            return None
        for access in self._access_codes:
            if (
                access.contract_id == contract_id
                and hmac.compare_digest(access.access_code.encode(), access_code.encode())
                and access.expires_at > now
            ):
                return replace(access)
        return None

    def get_latest_valid_access_code(self, contract_id: str, now: datetime) -> Optional[ContractAccess]:
        valid = [a for a in self._access_codes if a.contract_id == contract_id and a.expires_at > now]
        if not valid:
            return None
        return replace(max(valid, key=lambda a: a.created_at))

    def list_access_codes(self, contract_id: str) -> List[ContractAccess]:
        return [replace(a) for a in self._access_codes if a.contract_id == contract_id]

    # ------------------------------------------------------------------ #
    # Signature audits
    # ------------------------------------------------------------------ #
    def add_signature_audit(
        self,
        *,
        contract_id: str,
        action: str,
        client_id: Optional[str] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> SignatureAudit:
        audit = SignatureAudit(
            id=str(uuid.uuid4()),
            contract_id=contract_id,
            action=action,
            client_id=client_id,
            user_id=user_id,
            ip_address=ip_address,
            audit_metadata=dict(metadata or {}),
            created_at=created_at or utcnow(),
        )
        self._audits.append(audit)
        return replace(audit)

    def list_signature_audits(self, contract_id: str) -> List[SignatureAudit]:
        return [replace(a) for a in self._audits if a.contract_id == contract_id]

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #
    def create_payment(self, **fields: Any) -> Payment:
        payment = Payment(id=str(uuid.uuid4()), **fields)
        self._payments[payment.id] = payment
        return replace(payment)

    def get_payment_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        for payment in self._payments.values():
            if payment.transaction_id == transaction_id:
                return replace(payment)
        return None

    def update_payment_status(self, payment_id: str, status: str, updated_at: Optional[datetime] = None) -> Payment:
        payment = self._payments.get(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        payment.status = status
        payment.updated_at = updated_at or utcnow()
        return replace(payment)

    def list_payments(self, contract_id: str) -> List[Payment]:
        payments = [p for p in self._payments.values() if p.contract_id == contract_id]
        payments.sort(key=lambda p: p.created_at, reverse=True)
        return [replace(p) for p in payments]
