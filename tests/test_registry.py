import pytest

from src.integrations.clients.mocks.mobile_money import MobileMoneyStubClient
from src.integrations.clients.real_http.flutterwave import FlutterwaveClient
from src.integrations.clients.real_http.paypal import PayPalClient
from src.integrations.clients.real_http.stripe_card import StripeCardClient
from src.integrations.clients.registry import PaymentProviderRegistry
from src.lifecycle.errors import ContractValidationError
from src.utils.config_loader import AppSettings


def test_from_settings_wires_every_provider():
    registry = PaymentProviderRegistry.from_settings(AppSettings())

    assert isinstance(registry.get("stripe"), StripeCardClient)
    assert isinstance(registry.get("PayPal"), PayPalClient)
    assert isinstance(registry.get("flutterwave"), FlutterwaveClient)
    for carrier in ("mtn", "airtel", "mpesa"):
        client = registry.get("momo", carrier)
        assert isinstance(client, MobileMoneyStubClient)
        assert client.carrier.key == carrier


def test_momo_defaults_to_mtn():
    assert PaymentProviderRegistry.key_for("momo") == "momo:mtn"
    assert PaymentProviderRegistry.key_for(" MOMO ", "Airtel") == "momo:airtel"


@pytest.mark.parametrize("provider,carrier", [("", None), ("bitcoin", None), ("momo", "tigo")])
def test_invalid_provider_names(provider, carrier):
    with pytest.raises(ContractValidationError):
        PaymentProviderRegistry.key_for(provider, carrier)


def test_unconfigured_provider():
    registry = PaymentProviderRegistry({})
    with pytest.raises(ContractValidationError):
        registry.get("stripe")
