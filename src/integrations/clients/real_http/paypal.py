"""
PayPal Orders v2 HTTP client.

Each call fetches a client-credentials token, then creates or reads a
checkout order. The payer is redirected to the order's approval link.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from src.integrations.clients.response_wrappers import PAYPAL_STATUS_MAP, normalize_verification_response
from src.integrations.contracts.interfaces import (
    PaymentInitiationResult,
    PaymentProvider,
    PaymentRequest,
    PaymentVerificationResult,
    Provider,
)
from src.integrations.contracts.payments import PLATFORM_PREFIX, build_transaction_reference
from src.lifecycle.errors import PaymentProcessingError, PaymentVerificationError
from src.utils.config_loader import PayPalSettings

logger = logging.getLogger(__name__)

_APPROVAL_RELS = ("approve", "payer-action")


class PayPalClient(PaymentProvider):
    def __init__(
        self,
        settings: PayPalSettings,
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
        if not (settings.client_id and settings.client_secret):
            logger.warning("PayPal client credentials are not set.")

    @property
    def provider(self) -> Provider:
        return Provider.PAYPAL

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            f"{self.base_url}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self._settings.client_id, self._settings.client_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    @staticmethod
    def _approval_link(links: List[Dict[str, Any]]) -> str:
        for link in links:
            if link.get("rel") in _APPROVAL_RELS and link.get("href"):
                return link["href"]
        raise ValueError("PayPal order response has no approval link")

    async def initiate(self, request: PaymentRequest) -> PaymentInitiationResult:
        tx_ref = build_transaction_reference(PLATFORM_PREFIX, request.contract_ref)
        return_url = request.redirect_url or self._default_redirect_url
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": request.contract_ref,
                    "custom_id": tx_ref,
                    "description": f"Contract Payment - {request.contract_ref}",
                    "amount": {
                        "currency_code": request.currency.upper(),
                        "value": f"{request.amount:.2f}",
                    },
                }
            ],
            "application_context": {
                "brand_name": self._platform_name,
                "return_url": return_url,
                "cancel_url": return_url,
                "user_action": "PAY_NOW",
            },
        }
        try:
            logger.info("Creating PayPal order for %s", request.contract_ref)
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                token = await self._access_token(client)
                response = await client.post(
                    f"{self.base_url}/v2/checkout/orders",
                    json=payload,
                    headers={"Authorization": f"Bearer {token}", "PayPal-Request-Id": tx_ref},
                )
                response.raise_for_status()
                data = response.json()
            return PaymentInitiationResult(
                provider=self.provider,
                transaction_ref=tx_ref,
                transaction_id=data["id"],
                amount=request.amount,
                currency=request.currency.upper(),
                redirect_url=self._approval_link(data.get("links") or []),
            )
        except httpx.HTTPStatusError as e:
            logger.error("HTTP error from PayPal: %s %s", e.response.status_code, e.response.text)
            raise PaymentProcessingError() from e
        except Exception as exc:
            logger.exception("PayPal order creation failed for %s", request.contract_ref)
            raise PaymentProcessingError() from exc

    async def verify(self, transaction_id: str) -> PaymentVerificationResult:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                token = await self._access_token(client)
                response = await client.get(
                    f"{self.base_url}/v2/checkout/orders/{transaction_id}",
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
                data = response.json()
            units = data.get("purchase_units") or [{}]
            amount = units[0].get("amount") or {}
            normalized = normalize_verification_response(
                {
                    "id": data.get("id"),
                    "status": data.get("status"),
                    "amount": amount.get("value", 0),
                    "currency": amount.get("currency_code"),
                },
                status_map=PAYPAL_STATUS_MAP,
                fallback_transaction_id=transaction_id,
            )
        except httpx.HTTPStatusError as e:
            logger.error("HTTP error verifying PayPal order %s: %s", transaction_id, e.response.status_code)
            raise PaymentVerificationError() from e
        except Exception as exc:
            logger.exception("PayPal verification failed for %s", transaction_id)
            raise PaymentVerificationError() from exc

        return PaymentVerificationResult(
            status=normalized.status,
            amount=normalized.amount,
            currency=normalized.currency,
            external_transaction_id=normalized.external_transaction_id,
        )
