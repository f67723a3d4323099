"""
Real Postgres-backed DB for production when USE_POSTGRES and DATABASE_URL are set.
Implements the same interface as src.database.postgres (in-memory stub).
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import create_engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from src.database.models import (
    Base,
    Client,
    Contract,
    ContractAccess,
    Payment,
    SignatureAudit,
    User,
)
from src.lifecycle.clock import utcnow
from src.lifecycle.errors import ConcurrentUpdateError, NotFoundError


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    if s.startswith("postgresql://"):
        s = "postgresql+psycopg://" + s[len("postgresql://"):]
    return s


class PostgresDB:
    """
    Postgres data access using SQLAlchemy. Use when DATABASE_URL is set and
    USE_POSTGRES=true.
    """

    def __init__(self, connection_string: str) -> None:
        connection_string = _normalize_connection_string(connection_string)
        engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        if not connection_string.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=10)
        self.engine = create_engine(connection_string, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def _session(self) -> Session:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ------------------------------------------------------------------ #
    # Clients & users
    # ------------------------------------------------------------------ #
    def create_client(self, *, full_name: str, email: str, phone: Optional[str] = None) -> Client:
        with self._session() as s:
            c = Client(id=str(uuid4()), full_name=full_name, email=email, phone=phone)
            s.add(c)
            s.flush()
            s.refresh(c)
            return c

    def get_client(self, client_id: str) -> Optional[Client]:
        with self._session() as s:
            return s.execute(select(Client).where(Client.id == str(client_id))).scalar_one_or_none()

    def create_user(self, *, full_name: str, email: str, user_id: Optional[str] = None) -> User:
        with self._session() as s:
            u = User(id=user_id or str(uuid4()), full_name=full_name, email=email)
            s.add(u)
            s.flush()
            s.refresh(u)
            return u

    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as s:
            return s.execute(select(User).where(User.id == str(user_id))).scalar_one_or_none()

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #
    def count_contracts_with_ref_prefix(self, prefix: str) -> int:
        with self._session() as s:
            stmt = select(func.count(Contract.id)).where(Contract.contract_ref.startswith(prefix))
            return int(s.execute(stmt).scalar_one())

    def create_contract(
        self,
        *,
        access_code: str,
        access_expires_at: datetime,
        before_commit: Optional[Callable[[Contract, ContractAccess], None]] = None,
        **fields: Any,
    ) -> Contract:
        with self._session() as s:
            contract = Contract(id=str(uuid4()), **fields)
            s.add(contract)
            try:
                s.flush()
            except IntegrityError as exc:
                raise ConcurrentUpdateError(
                    f"Contract reference {fields.get('contract_ref')} was taken by another request; retry"
                ) from exc
            access = ContractAccess(
                id=str(uuid4()),
                contract_id=contract.id,
                access_code=access_code,
                expires_at=access_expires_at,
                created_at=contract.created_at,
            )
            s.add(access)
            s.flush()
            if before_commit is not None:
                before_commit(contract, access)
            s.refresh(contract)
            return contract

    def get_contract_by_ref(self, contract_ref: str) -> Optional[Contract]:
        with self._session() as s:
            stmt = select(Contract).where(Contract.contract_ref == contract_ref)
            return s.execute(stmt).scalar_one_or_none()

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        with self._session() as s:
            return s.execute(select(Contract).where(Contract.id == str(contract_id))).scalar_one_or_none()

    def list_contracts(self) -> List[Contract]:
        with self._session() as s:
            stmt = select(Contract).order_by(Contract.created_at.desc())
            return list(s.execute(stmt).scalars().all())

    def update_contract(self, contract_ref: str, updates: Dict[str, Any], *, expected_version: int) -> Contract:
        values = dict(updates)
        values["version"] = expected_version + 1
        with self._session() as s:
            stmt = (
                update(Contract)
                .where(Contract.contract_ref == contract_ref, Contract.version == expected_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = s.execute(stmt)
            if result.rowcount == 0:
                exists = s.execute(
                    select(Contract.id).where(Contract.contract_ref == contract_ref)
                ).scalar_one_or_none()
                if exists is None:
                    raise NotFoundError()
                raise ConcurrentUpdateError()
            stmt = select(Contract).where(Contract.contract_ref == contract_ref)
            return s.execute(stmt).scalar_one()

    # ------------------------------------------------------------------ #
    # Access codes
    # ------------------------------------------------------------------ #
    def add_access_code(self, *, contract_id: str, access_code: str, expires_at: datetime,
                        created_at: Optional[datetime] = None) -> ContractAccess:
        with self._session() as s:
            a = ContractAccess(
                id=str(uuid4()),
                contract_id=contract_id,
                access_code=access_code,
                expires_at=expires_at,
                created_at=created_at or utcnow(),
            )
            s.add(a)
            s.flush()
            s.refresh(a)
            return a

    def find_valid_access_code(self, contract_ref: str, access_code: str, now: datetime) -> Optional[ContractAccess]:
        with self._session() as s:
            stmt = (
                select(ContractAccess)
                .join(Contract, Contract.id == ContractAccess.contract_id)
                .where(
                    Contract.contract_ref == contract_ref,
                    ContractAccess.access_code == access_code,
                    ContractAccess.expires_at > now,
                )
                .limit(1)
            )
            return s.execute(stmt).scalar_one_or_none()

    def get_latest_valid_access_code(self, contract_id: str, now: datetime) -> Optional[ContractAccess]:
        with self._session() as s:
            stmt = (
                select(ContractAccess)
                .where(ContractAccess.contract_id == contract_id, ContractAccess.expires_at > now)
                .order_by(ContractAccess.created_at.desc())
                .limit(1)
            )
            return s.execute(stmt).scalar_one_or_none()

    def list_access_codes(self, contract_id: str) -> List[ContractAccess]:
        with self._session() as s:
            stmt = select(ContractAccess).where(ContractAccess.contract_id == contract_id)
            return list(s.execute(stmt).scalars().all())

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
        with self._session() as s:
            a = SignatureAudit(
                id=str(uuid4()),
                contract_id=contract_id,
                action=action,
                client_id=client_id,
                user_id=user_id,
                ip_address=ip_address,
                audit_metadata=dict(metadata or {}),
                created_at=created_at or utcnow(),
            )
            s.add(a)
            s.flush()
            s.refresh(a)
            return a

    def list_signature_audits(self, contract_id: str) -> List[SignatureAudit]:
        with self._session() as s:
            stmt = (
                select(SignatureAudit)
                .where(SignatureAudit.contract_id == contract_id)
                .order_by(SignatureAudit.created_at)
            )
            return list(s.execute(stmt).scalars().all())

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #
    def create_payment(self, **fields: Any) -> Payment:
        with self._session() as s:
            p = Payment(id=str(uuid4()), **fields)
            s.add(p)
            s.flush()
            s.refresh(p)
            return p

    def get_payment_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        with self._session() as s:
            stmt = select(Payment).where(Payment.transaction_id == transaction_id).limit(1)
            return s.execute(stmt).scalar_one_or_none()

    def update_payment_status(self, payment_id: str, status: str, updated_at: Optional[datetime] = None) -> Payment:
        with self._session() as s:
            p = s.execute(select(Payment).where(Payment.id == payment_id)).scalar_one_or_none()
            if p is None:
                raise NotFoundError("Payment not found")
            p.status = status
            p.updated_at = updated_at or utcnow()
            s.flush()
            s.refresh(p)
            return p

    def list_payments(self, contract_id: str) -> List[Payment]:
        with self._session() as s:
            stmt = (
                select(Payment)
                .where(Payment.contract_id == contract_id)
                .order_by(Payment.created_at.desc())
            )
            return list(s.execute(stmt).scalars().all())
