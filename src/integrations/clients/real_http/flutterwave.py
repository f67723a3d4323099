"""
Flutterwave (regional card / bank aggregator) HTTP client.

Creates a hosted payment link the payer is redirected to, and verifies
transactions by the id Flutterwave reports on the redirect.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from src.integrations.clients.response_wrappers import FLUTTERWAVE_STATUS_MAP, normalize_verification_response
from src.integrations.contracts.interfaces import (
    PaymentInitiationResult,
    PaymentProvider,
    PaymentRequest,
    PaymentVerificationResult,
    Provider,
)
from src.integrations.contracts.payments import PLATFORM_PREFIX, build_transaction_reference
from src.lifecycle.errors import PaymentProcessingError, PaymentVerificationError
from src.utils.config_loader import FlutterwaveSettings

logger = logging.getLogger(__name__)


class FlutterwaveClient(PaymentProvider):
    def __init__(
        self,
        settings: FlutterwaveSettings,
        platform_name: str = "Egreed Technology",
        default_redirect_url: str = "",
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = settings.base_url.rstrip("/")
        self._settings = settings
        self._platform_name = platform_name
        self._default_redirect_url = default_redirect_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        if not settings.secret_key:
            logger.warning("Flutterwave secret key is not set.")

    @property
    def provider(self) -> Provider:
        return Provider.FLUTTERWAVE

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._settings.secret_key}"},
        )

    def _build_payload(self, request: PaymentRequest, tx_ref: str) -> Dict[str, Any]:
        return {
            "tx_ref": tx_ref,
            "amount": request.amount,
            "currency": request.currency.upper(),
            "redirect_url": request.redirect_url or self._default_redirect_url,
            "meta": {
                "contract_ref": request.contract_ref,
                "platform": self._platform_name,
            },
            "customer": {
                "email": request.payer_email,
                "name": request.payer_name,
                "phonenumber": request.payer_phone,
            },
            "customizations": {
                "title": self._platform_name,
                "description": f"Contract Payment - {request.contract_ref}",
                "logo": self._settings.logo_url,
            },
        }

    async def initiate(self, request: PaymentRequest) -> PaymentInitiationResult:
        tx_ref = build_transaction_reference(PLATFORM_PREFIX, request.contract_ref)
        payload = self._build_payload(request, tx_ref)
        url = f"{self.base_url}/payments"
        try:
            logger.info("Creating Flutterwave payment link tx_ref=%s", tx_ref)
            async with self._client() as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                data = response.json()
            return PaymentInitiationResult(
                provider=self.provider,
                transaction_ref=tx_ref,
                transaction_id=tx_ref,
                amount=request.amount,
                currency=request.currency.upper(),
                redirect_url=data["data"]["link"],
            )
        except httpx.HTTPStatusError as e:
            logger.error("HTTP error from Flutterwave: %s %s", e.response.status_code, e.response.text)
            raise PaymentProcessingError() from e
        except Exception as exc:
            logger.exception("Flutterwave payment creation failed tx_ref=%s", tx_ref)
            raise PaymentProcessingError() from exc

    async def verify(self, transaction_id: str) -> PaymentVerificationResult:
        url = f"{self.base_url}/transactions/{transaction_id}/verify"
        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json().get("data") or {}
            normalized = normalize_verification_response(
                data,
                status_map=FLUTTERWAVE_STATUS_MAP,
                fallback_transaction_id=transaction_id,
            )
        except httpx.HTTPStatusError as e:
            logger.error("HTTP error verifying Flutterwave transaction %s: %s", transaction_id, e.response.status_code)
            raise PaymentVerificationError() from e
        except Exception as exc:
            logger.exception("Flutterwave verification failed for %s", transaction_id)
            raise PaymentVerificationError() from exc

        return PaymentVerificationResult(
            status=normalized.status,
            amount=normalized.amount,
            currency=normalized.currency,
            external_transaction_id=normalized.external_transaction_id,
            metadata={"tx_ref": normalized.raw.get("tx_ref")},
        )
