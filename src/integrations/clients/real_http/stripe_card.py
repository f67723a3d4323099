"""
Card processor client (Stripe SDK).

Creates a PaymentIntent and hands its client secret back as a continuation
token for the embedded card form. Amounts travel in minor units.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

import stripe

from src.integrations.clients.response_wrappers import STRIPE_STATUS_MAP, normalize_verification_response
from src.integrations.contracts.interfaces import (
    PaymentInitiationResult,
    PaymentProvider,
    PaymentRequest,
    PaymentVerificationResult,
    Provider,
)
from src.integrations.contracts.payments import (
    PLATFORM_PREFIX,
    build_transaction_reference,
    from_minor_units,
    to_minor_units,
)
from src.lifecycle.errors import PaymentProcessingError, PaymentVerificationError
from src.utils.config_loader import StripeSettings

logger = logging.getLogger(__name__)


class StripeCardClient(PaymentProvider):
    def __init__(
        self,
        settings: StripeSettings,
        platform_name: str = "Egreed Technology",
        stripe_module: Any = stripe,
    ) -> None:
        self._settings = settings
        self._platform_name = platform_name
        self._stripe = stripe_module
        if not settings.secret_key:
            logger.warning("Stripe secret key is not set.")

    @property
    def provider(self) -> Provider:
        return Provider.STRIPE

    def _request_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self._settings.secret_key}
        if self._settings.api_version:
            options["stripe_version"] = self._settings.api_version
        return options

    async def initiate(self, request: PaymentRequest) -> PaymentInitiationResult:
        tx_ref = build_transaction_reference(PLATFORM_PREFIX, request.contract_ref)
        try:
            logger.info("Creating Stripe payment intent for %s (%s %s)",
                        request.contract_ref, request.amount, request.currency)
            intent = await asyncio.to_thread(
                self._stripe.PaymentIntent.create,
                amount=to_minor_units(request.amount),
                currency=request.currency.lower(),
                metadata={
                    "contract_ref": request.contract_ref,
                    "client_email": request.payer_email,
                    "platform": self._platform_name,
                    "tx_ref": tx_ref,
                },
                receipt_email=request.payer_email,
                **self._request_options(),
            )
            return PaymentInitiationResult(
                provider=self.provider,
                transaction_ref=tx_ref,
                transaction_id=intent.id,
                amount=request.amount,
                currency=request.currency.upper(),
                continuation_token=intent.client_secret,
            )
        except Exception as exc:
            logger.exception("Stripe payment intent creation failed for %s", request.contract_ref)
            raise PaymentProcessingError() from exc

    async def verify(self, transaction_id: str) -> PaymentVerificationResult:
        try:
            intent = await asyncio.to_thread(
                self._stripe.PaymentIntent.retrieve,
                transaction_id,
                **self._request_options(),
            )
            status = intent.status
            # Stripe drops a declined intent back to requires_payment_method.
            if status == "requires_payment_method" and getattr(intent, "last_payment_error", None):
                status = "payment_failed"
            normalized = normalize_verification_response(
                {
                    "id": intent.id,
                    "status": status,
                    "amount": from_minor_units(intent.amount),
                    "currency": intent.currency,
                },
                status_map=STRIPE_STATUS_MAP,
                fallback_transaction_id=transaction_id,
            )
        except Exception as exc:
            logger.exception("Stripe payment confirmation failed for %s", transaction_id)
            raise PaymentVerificationError() from exc

        return PaymentVerificationResult(
            status=normalized.status,
            amount=normalized.amount,
            currency=normalized.currency,
            external_transaction_id=normalized.external_transaction_id,
        )
