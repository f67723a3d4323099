"""
Contract lifecycle.

DRAFT -> (PENDING_CLIENT) -> PENDING_DEVELOPER -> FULLY_SIGNED -> COMPLETED,
with EXPIRED reachable from the pre-signature states. PENDING_PAYMENT and
PARTIALLY_SIGNED exist for display only; nothing here moves a contract into
them.

Payment status is tracked separately and never drives ``status``: a PAID
contract stays FULLY_SIGNED until ``complete`` is called.

Every mutation is a compare-and-swap on the contract's ``version`` so a
concurrent writer gets ConcurrentUpdateError instead of silently losing.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from src.database.models import ContractPaymentStatus, ContractStatus, PaymentMethod
from src.lifecycle.access_codes import AccessCodeIssuer
from src.lifecycle.audit import SIGNED_CLIENT, SIGNED_DEVELOPER, AuditLogWriter
from src.lifecycle.clock import Clock, utcnow
from src.lifecycle.errors import (
    AuthorizationError,
    ContractStateError,
    ContractValidationError,
    NotFoundError,
)
from src.lifecycle.notifications import NotificationTrigger
from src.lifecycle.references import next_contract_ref

logger = logging.getLogger(__name__)

PRE_SIGNATURE_STATES = {ContractStatus.DRAFT.value, ContractStatus.PENDING_CLIENT.value}
FULLY_SIGNED_STATES = {ContractStatus.FULLY_SIGNED.value, ContractStatus.COMPLETED.value}


class ContractService:
    def __init__(
        self,
        db,
        notifier: NotificationTrigger,
        *,
        clock: Clock = utcnow,
        contract_segment: str = "IoT",
        access_codes: Optional[AccessCodeIssuer] = None,
        audit: Optional[AuditLogWriter] = None,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self.clock = clock
        self.contract_segment = contract_segment
        self.access_codes = access_codes or AccessCodeIssuer(db, clock=clock)
        self.audit = audit or AuditLogWriter(db, clock=clock)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def get_contract(self, contract_ref: str):
        contract = self.db.get_contract_by_ref(contract_ref)
        if contract is None:
            raise NotFoundError()
        return contract

    def list_contracts(self):
        return self.db.list_contracts()

    def get_signature_status(self, contract_ref: str) -> Dict[str, Any]:
        contract = self.db.get_contract_by_ref(contract_ref)
        if contract is None:
            return {
                "client_signed": False,
                "developer_signed": False,
                "fully_signed": False,
                "payment_complete": False,
                "status": None,
            }
        return {
            "client_signed": contract.client_signed_at is not None,
            "developer_signed": contract.developer_signed_at is not None,
            "fully_signed": contract.status in FULLY_SIGNED_STATES,
            "payment_complete": contract.payment_status == ContractPaymentStatus.PAID.value,
            "status": contract.status,
        }

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #
    def create_contract(
        self,
        *,
        issuer_id: str,
        client_id: str,
        title: str,
        amount: float,
        currency: str = "USD",
        description: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        if not issuer_id:
            raise AuthorizationError("Authentication required")

        errors = []
        if not (title or "").strip():
            errors.append("title is required")
        if amount is None or not math.isfinite(amount) or amount <= 0:
            errors.append("amount must be greater than zero")
        currency = (currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            errors.append("currency must be a 3-letter code")
        if start_date and end_date and end_date < start_date:
            errors.append("end_date must not be before start_date")
        client = self.db.get_client(client_id) if client_id else None
        if client is None:
            errors.append(f"client '{client_id}' does not exist")
        if errors:
            raise ContractValidationError(errors=errors)

        now = self.clock()
        contract_ref = next_contract_ref(self.db, self.contract_segment, now)
        code, expires_at = self.access_codes.new_code()

        def _email_client(contract, access) -> None:
            self.notifier.send_contract_email(
                to=client.email,
                contract_ref=contract.contract_ref,
                access_code=access.access_code,
                amount=contract.amount,
                currency=contract.currency,
            )

        try:
            contract = self.db.create_contract(
                access_code=code,
                access_expires_at=expires_at,
                before_commit=_email_client,
                contract_ref=contract_ref,
                client_id=client.id,
                developer_id=issuer_id,
                title=title.strip(),
                description=description,
                amount=float(amount),
                currency=currency,
                start_date=start_date,
                end_date=end_date,
                status=ContractStatus.DRAFT.value,
                payment_status=ContractPaymentStatus.PENDING.value,
                version=1,
                created_at=now,
                updated_at=now,
            )
        except Exception:
            logger.exception("Contract creation failed and was rolled back: ref=%s", contract_ref)
            raise

        logger.info("Contract %s created by %s for client %s", contract.contract_ref, issuer_id, client.id)
        return contract

    # ------------------------------------------------------------------ #
    # Signatures
    # ------------------------------------------------------------------ #
    def sign_as_client(self, contract_ref: str, signature: str, access_code: str,
                       ip_address: Optional[str] = None):
        if not self.access_codes.verify(contract_ref, access_code):
            logger.warning("Rejected client signature for %s: invalid or expired access code", contract_ref)
            raise AuthorizationError()

        contract = self.get_contract(contract_ref)
        if not (signature or "").strip():
            raise ContractValidationError(errors=["signature is required"])
        if contract.status == ContractStatus.EXPIRED.value:
            raise ContractStateError("Contract has expired")
        if contract.client_signed_at is not None:
            raise ContractStateError("Contract already signed by client")

        now = self.clock()
        # A developer who signed first already moved the contract to FULLY_SIGNED.
        if contract.developer_signed_at is None:
            new_status = ContractStatus.PENDING_DEVELOPER.value
        else:
            new_status = contract.status

        updated = self.db.update_contract(
            contract_ref,
            {
                "client_signature": signature,
                "client_signed_at": now,
                "status": new_status,
                "updated_at": now,
            },
            expected_version=contract.version,
        )
        self.audit.record(updated.id, SIGNED_CLIENT, client_id=updated.client_id, ip_address=ip_address)
        logger.info("Contract %s signed by client; status=%s", contract_ref, updated.status)
        return updated

    def sign_as_developer(self, contract_ref: str, signature: str, acting_user_id: str,
                          ip_address: Optional[str] = None):
        if not acting_user_id:
            raise AuthorizationError("Authentication required")

        contract = self.get_contract(contract_ref)
        if not (signature or "").strip():
            raise ContractValidationError(errors=["signature is required"])
        if contract.status == ContractStatus.EXPIRED.value:
            raise ContractStateError("Contract has expired")
        if contract.developer_signed_at is not None:
            raise ContractStateError("Contract already signed by developer")

        # Client signature is not required first.
        now = self.clock()
        updated = self.db.update_contract(
            contract_ref,
            {
                "developer_signature": signature,
                "developer_signed_at": now,
                "developer_id": acting_user_id,
                "signed_at": now,
                "status": ContractStatus.FULLY_SIGNED.value,
                "updated_at": now,
            },
            expected_version=contract.version,
        )
        self.audit.record(updated.id, SIGNED_DEVELOPER, user_id=acting_user_id, ip_address=ip_address)
        logger.info("Contract %s finalized by %s", contract_ref, acting_user_id)
        return updated

    # ------------------------------------------------------------------ #
    # Payment status
    # ------------------------------------------------------------------ #
    def update_payment_status(self, contract_ref: str, payment_status: str,
                              transaction_id: Optional[str] = None, method: Optional[str] = None):
        status = _parse_enum(ContractPaymentStatus, payment_status, "payment_status")
        payment_method = _parse_enum(PaymentMethod, method, "payment_method") if method else None

        contract = self.get_contract(contract_ref)
        now = self.clock()
        updates: Dict[str, Any] = {"payment_status": status.value, "updated_at": now}
        if transaction_id:
            updates["transaction_id"] = transaction_id
        if payment_method is not None:
            updates["payment_method"] = payment_method.value
        if status is ContractPaymentStatus.PAID:
            updates["payment_date"] = now

        updated = self.db.update_contract(contract_ref, updates, expected_version=contract.version)
        logger.info("Contract %s payment status -> %s (tx=%s)", contract_ref, status.value, transaction_id)
        return updated

    # ------------------------------------------------------------------ #
    # Other transitions
    # ------------------------------------------------------------------ #
    def expire(self, contract_ref: str):
        contract = self.get_contract(contract_ref)
        if contract.status not in PRE_SIGNATURE_STATES:
            raise ContractStateError(f"Cannot expire a contract in status {contract.status}")
        now = self.clock()
        updated = self.db.update_contract(
            contract_ref,
            {"status": ContractStatus.EXPIRED.value, "updated_at": now},
            expected_version=contract.version,
        )
        logger.info("Contract %s expired", contract_ref)
        return updated

    def complete(self, contract_ref: str):
        contract = self.get_contract(contract_ref)
        if contract.status != ContractStatus.FULLY_SIGNED.value:
            raise ContractStateError("Only fully signed contracts can be completed")
        if contract.payment_status != ContractPaymentStatus.PAID.value:
            raise ContractStateError("Contract payment is not complete")
        now = self.clock()
        updated = self.db.update_contract(
            contract_ref,
            {"status": ContractStatus.COMPLETED.value, "updated_at": now},
            expected_version=contract.version,
        )
        logger.info("Contract %s completed", contract_ref)
        return updated

    # ------------------------------------------------------------------ #
    # Reminders
    # ------------------------------------------------------------------ #
    def send_reminder(self, contract_ref: str) -> None:
        contract = self.get_contract(contract_ref)
        client = self.db.get_client(contract.client_id)
        if client is None:
            raise NotFoundError("Client not found")

        access = self.access_codes.find_valid(contract.id)
        if access is None:
            access = self.access_codes.issue(contract.id)

        self.notifier.send_contract_email(
            to=client.email,
            contract_ref=contract.contract_ref,
            access_code=access.access_code,
            amount=contract.amount,
            currency=contract.currency,
            is_reminder=True,
        )


def _parse_enum(enum_type, value: Optional[str], label: str):
    try:
        return enum_type(str(value or "").strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ContractValidationError(errors=[f"{label} must be one of: {allowed}"]) from None
