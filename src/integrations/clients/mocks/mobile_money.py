"""
Mobile money (MTN, Airtel, M-Pesa): STUB client.

⚠️  No network call is made. Each carrier synthesizes a transaction id and a
    canned "check your phone" message. A real carrier client only has to
    implement PaymentProvider and be wired in clients/registry.py.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from src.integrations.contracts.interfaces import (
    PaymentInitiationResult,
    PaymentProvider,
    PaymentRequest,
    PaymentStatus,
    PaymentVerificationResult,
    Provider,
)
from src.integrations.contracts.payments import build_transaction_reference
from src.lifecycle.errors import PaymentProcessingError
from src.utils.config_loader import MobileMoneySettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Carrier:
    key: str
    provider: Provider
    prefix: str
    message_template: str
    forced_currency: Optional[str] = None


CARRIERS: Dict[str, Carrier] = {
    "mtn": Carrier(
        key="mtn",
        provider=Provider.MTN,
        prefix="MOMO",
        message_template="Payment request sent to {phone}. Please check your phone to complete transaction.",
    ),
    "airtel": Carrier(
        key="airtel",
        provider=Provider.AIRTEL,
        prefix="AIRTEL",
        message_template="Airtel Money payment initiated for {phone}",
    ),
    "mpesa": Carrier(
        key="mpesa",
        provider=Provider.MPESA,
        prefix="MPESA",
        message_template="M-Pesa STK push sent to {phone}",
        forced_currency="KES",
    ),
}


class MobileMoneyStubClient(PaymentProvider):
    """
    Stub mobile money client for one carrier.

    Parameters
    ----------
    carrier : str
        One of ``mtn``, ``airtel`` or ``mpesa``.
    settings : MobileMoneySettings
        Carrier credentials; only ``default_currency`` is read by the stub.
    """

    def __init__(self, carrier: str, settings: Optional[MobileMoneySettings] = None):
        if carrier not in CARRIERS:
            raise ValueError(f"Unknown mobile money carrier '{carrier}'")
        self._carrier = CARRIERS[carrier]
        self._settings = settings or MobileMoneySettings()

        # In-memory store (reset on restart)
        self._payments: Dict[str, PaymentInitiationResult] = {}

        logger.info("[MOMO STUB] %s client initialised", self._carrier.provider.value)

    @property
    def provider(self) -> Provider:
        return self._carrier.provider

    @property
    def carrier(self) -> Carrier:
        return self._carrier

    def _currency_for(self, request: PaymentRequest) -> str:
        if self._carrier.forced_currency:
            return self._carrier.forced_currency
        return (request.currency or self._settings.default_currency).upper()

    async def initiate(self, request: PaymentRequest) -> PaymentInitiationResult:
        try:
            transaction_id = build_transaction_reference(self._carrier.prefix)
            result = PaymentInitiationResult(
                provider=self.provider,
                transaction_ref=transaction_id,
                transaction_id=transaction_id,
                amount=request.amount,
                currency=self._currency_for(request),
                pending_message=self._carrier.message_template.format(phone=request.payer_phone),
            )
        except Exception as exc:
            logger.exception("[MOMO STUB] %s payment initiation failed", self.provider.value)
            raise PaymentProcessingError("Mobile money payment initiation failed") from exc

        self._payments[transaction_id] = result
        logger.info("[MOMO STUB] %s payment %s for %s %s (contract %s)",
                    self.provider.value, transaction_id, request.amount, result.currency, request.contract_ref)
        return result

    async def verify(self, transaction_id: str) -> PaymentVerificationResult:
        issued = self._payments.get(transaction_id)
        if issued is None:
            # Unknown reference: report PENDING so callers can retry
            return PaymentVerificationResult(
                status=PaymentStatus.PENDING,
                amount=0.0,
                currency=self._settings.default_currency,
                external_transaction_id=transaction_id,
            )

        return PaymentVerificationResult(
            status=PaymentStatus.COMPLETED,
            amount=issued.amount,
            currency=issued.currency,
            external_transaction_id=transaction_id,
        )
