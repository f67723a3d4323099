"""
Payment provider selection.

This is the ONE place where a provider name from a request is turned into a
client. Swapping the mobile money stub for a real carrier client happens here.
"""

import logging
from typing import Dict, Optional

from src.integrations.clients.mocks.mobile_money import CARRIERS, MobileMoneyStubClient
from src.integrations.clients.real_http.flutterwave import FlutterwaveClient
from src.integrations.clients.real_http.paypal import PayPalClient
from src.integrations.clients.real_http.stripe_card import StripeCardClient
from src.integrations.contracts.interfaces import PaymentProvider
from src.lifecycle.errors import ContractValidationError
from src.utils.config_loader import AppSettings

logger = logging.getLogger(__name__)

MOBILE_MONEY = "momo"
SUPPORTED_PROVIDERS = ("stripe", "paypal", "flutterwave", MOBILE_MONEY)


class PaymentProviderRegistry:
    def __init__(self, clients: Dict[str, PaymentProvider]) -> None:
        self._clients = dict(clients)

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "PaymentProviderRegistry":
        payments = settings.payments
        clients: Dict[str, PaymentProvider] = {
            "stripe": StripeCardClient(payments.stripe, platform_name=settings.platform_name),
            "paypal": PayPalClient(
                payments.paypal,
                platform_name=settings.platform_name,
                default_redirect_url=settings.payment_redirect_url,
                timeout_seconds=settings.http_timeout_seconds,
            ),
            "flutterwave": FlutterwaveClient(
                payments.flutterwave,
                platform_name=settings.platform_name,
                default_redirect_url=settings.payment_redirect_url,
                timeout_seconds=settings.http_timeout_seconds,
            ),
        }
        for carrier in CARRIERS:
            clients[f"{MOBILE_MONEY}:{carrier}"] = MobileMoneyStubClient(carrier, payments.mobile_money)
        return cls(clients)

    @staticmethod
    def key_for(provider: str, momo_provider: Optional[str] = None) -> str:
        provider_key = (provider or "").strip().lower()
        if provider_key not in SUPPORTED_PROVIDERS:
            raise ContractValidationError(
                f"Invalid provider. Expected one of: {', '.join(SUPPORTED_PROVIDERS)}."
            )
        if provider_key != MOBILE_MONEY:
            return provider_key

        carrier = (momo_provider or "mtn").strip().lower()
        if carrier not in CARRIERS:
            raise ContractValidationError(
                f"Invalid mobile money provider. Expected one of: {', '.join(CARRIERS)}."
            )
        return f"{MOBILE_MONEY}:{carrier}"

    def get(self, provider: str, momo_provider: Optional[str] = None) -> PaymentProvider:
        key = self.key_for(provider, momo_provider)
        client = self._clients.get(key)
        if client is None:
            raise ContractValidationError(f"Payment provider '{key}' is not configured.")
        return client

    def register(self, key: str, client: PaymentProvider) -> None:
        logger.info("Registering payment client %s for %s", type(client).__name__, key)
        self._clients[key] = client
