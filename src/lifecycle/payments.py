"""
Payment orchestration.

Initiation: validate, check the contract exists, dispatch to the provider
named by the request, keep a local Payment row (a copy of what the provider
reported, not the truth).
Verification: ask the same provider, refresh the local row, and mark the
contract PAID once the provider reports completion.
"""

import logging
from typing import Optional

from src.database.models import ContractPaymentStatus, PaymentMethod
from src.integrations.clients.registry import MOBILE_MONEY, PaymentProviderRegistry
from src.integrations.contracts.interfaces import (
    PaymentInitiationResult,
    PaymentRequest,
    PaymentStatus,
    PaymentVerificationResult,
    Provider,
)
from src.integrations.contracts.payments import validate_payment_request
from src.lifecycle.clock import Clock, utcnow
from src.lifecycle.errors import ContractValidationError, NotFoundError
from src.lifecycle.state_machine import ContractService

logger = logging.getLogger(__name__)

PROVIDER_METHODS = {
    Provider.STRIPE: PaymentMethod.STRIPE,
    Provider.PAYPAL: PaymentMethod.PAYPAL,
    Provider.FLUTTERWAVE: PaymentMethod.FLUTTERWAVE,
    Provider.MTN: PaymentMethod.MOBILE_MONEY,
    Provider.AIRTEL: PaymentMethod.MOBILE_MONEY,
    Provider.MPESA: PaymentMethod.MOBILE_MONEY,
}


class PaymentOrchestrator:
    def __init__(self, db, registry: PaymentProviderRegistry, contracts: ContractService,
                 clock: Clock = utcnow) -> None:
        self.db = db
        self.registry = registry
        self.contracts = contracts
        self.clock = clock

    async def initiate(self, provider: str, request: PaymentRequest,
                       momo_provider: Optional[str] = None) -> PaymentInitiationResult:
        client = self.registry.get(provider, momo_provider)
        is_mobile_money = self.registry.key_for(provider, momo_provider).startswith(MOBILE_MONEY)

        errors = validate_payment_request(request, phone_required=is_mobile_money)
        if errors:
            raise ContractValidationError(errors=errors)

        contract = self.db.get_contract_by_ref(request.contract_ref)
        if contract is None:
            raise NotFoundError()

        result = await client.initiate(request)

        now = self.clock()
        self.db.create_payment(
            contract_id=contract.id,
            provider=result.provider.value,
            method=PROVIDER_METHODS[result.provider].value,
            transaction_ref=result.transaction_ref,
            transaction_id=result.transaction_id,
            amount=result.amount,
            currency=result.currency,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        logger.info("Payment initiated: provider=%s contract=%s tx=%s kind=%s",
                    result.provider.value, request.contract_ref, result.transaction_id, result.kind.value)
        return result

    async def verify(self, provider: str, transaction_id: str,
                     momo_provider: Optional[str] = None) -> PaymentVerificationResult:
        if not (transaction_id or "").strip():
            raise ContractValidationError(errors=["transaction_id is required"])
        client = self.registry.get(provider, momo_provider)

        result = await client.verify(transaction_id)

        payment = self.db.get_payment_by_transaction_id(transaction_id)
        if payment is None and result.metadata.get("tx_ref"):
            payment = self.db.get_payment_by_transaction_id(result.metadata["tx_ref"])
        if payment is None:
            logger.warning("Verified transaction %s has no local payment record", transaction_id)
            return result

        if payment.status == PaymentStatus.COMPLETED.value and result.status is not PaymentStatus.COMPLETED:
            logger.warning("Payment %s is already completed; provider now reports %s",
                           transaction_id, result.status.value)
        elif payment.status != result.status.value:
            self.db.update_payment_status(payment.id, result.status.value, updated_at=self.clock())
        if result.status is PaymentStatus.COMPLETED and result.amount and result.amount != payment.amount:
            logger.warning("Verified amount %s differs from initiated amount %s for %s",
                           result.amount, payment.amount, transaction_id)

        if result.status is PaymentStatus.COMPLETED and payment.contract_id:
            contract = self.db.get_contract(payment.contract_id)
            if contract is not None and contract.payment_status != ContractPaymentStatus.PAID.value:
                self.contracts.update_payment_status(
                    contract.contract_ref,
                    ContractPaymentStatus.PAID.value,
                    transaction_id=result.external_transaction_id or transaction_id,
                    method=payment.method,
                )
        return result
