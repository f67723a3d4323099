"""
Configuration loader for the contract signing backend
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ValidationError
import logging

logger = logging.getLogger(__name__)


class StripeSettings(BaseModel):
    """Card processor credentials"""

    secret_key: str = ""
    api_version: Optional[str] = None


class FlutterwaveSettings(BaseModel):
    """Regional aggregator credentials"""

    secret_key: str = ""
    base_url: str = "https://api.flutterwave.com/v3"
    logo_url: str = "https://egreedtech.org/logo.png"


class PayPalSettings(BaseModel):
    """PayPal REST credentials"""

    client_id: str = ""
    client_secret: str = ""
    base_url: str = "https://api-m.sandbox.paypal.com"


class MobileMoneySettings(BaseModel):
    """Mobile money carrier credentials (unused by the stub carriers)"""

    api_key: str = ""
    subscription_key: str = ""
    api_user: str = ""
    api_secret: str = ""
    default_currency: str = "RWF"


class PaymentSettings(BaseModel):
    stripe: StripeSettings = Field(default_factory=StripeSettings)
    flutterwave: FlutterwaveSettings = Field(default_factory=FlutterwaveSettings)
    paypal: PayPalSettings = Field(default_factory=PayPalSettings)
    mobile_money: MobileMoneySettings = Field(default_factory=MobileMoneySettings)


class EmailSettings(BaseModel):
    """Outbound email configuration"""

    smtp_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    from_address: str = "contracts@egreedtech.org"


class AppSettings(BaseModel):
    """Complete application configuration"""

    platform_name: str = "Egreed Technology"
    contract_segment: str = "IoT"
    app_base_url: str = "http://localhost:3000"
    payment_redirect_url: str = "http://localhost:3000/payments/complete"
    http_timeout_seconds: float = Field(default=20.0, gt=0)
    payments: PaymentSettings = Field(default_factory=PaymentSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)


# env var -> (section path, field)
_ENV_OVERRIDES = {
    "PLATFORM_NAME": ((), "platform_name"),
    "CONTRACT_SEGMENT": ((), "contract_segment"),
    "APP_BASE_URL": ((), "app_base_url"),
    "PAYMENT_REDIRECT_URL": ((), "payment_redirect_url"),
    "HTTP_TIMEOUT_SECONDS": ((), "http_timeout_seconds"),
    "STRIPE_SECRET_KEY": (("payments", "stripe"), "secret_key"),
    "STRIPE_API_VERSION": (("payments", "stripe"), "api_version"),
    "FLUTTERWAVE_SECRET_KEY": (("payments", "flutterwave"), "secret_key"),
    "FLUTTERWAVE_BASE_URL": (("payments", "flutterwave"), "base_url"),
    "PAYPAL_CLIENT_ID": (("payments", "paypal"), "client_id"),
    "PAYPAL_CLIENT_SECRET": (("payments", "paypal"), "client_secret"),
    "PAYPAL_BASE_URL": (("payments", "paypal"), "base_url"),
    "MTN_MOMO_API_KEY": (("payments", "mobile_money"), "api_key"),
    "MTN_MOMO_SUBSCRIPTION_KEY": (("payments", "mobile_money"), "subscription_key"),
    "MTN_MOMO_API_USER": (("payments", "mobile_money"), "api_user"),
    "MTN_MOMO_API_SECRET": (("payments", "mobile_money"), "api_secret"),
    "SMTP_ENABLED": (("email",), "smtp_enabled"),
    "SMTP_HOST": (("email",), "smtp_host"),
    "SMTP_PORT": (("email",), "smtp_port"),
    "SMTP_USERNAME": (("email",), "smtp_username"),
    "SMTP_PASSWORD": (("email",), "smtp_password"),
    "SMTP_USE_TLS": (("email",), "smtp_use_tls"),
    "EMAIL_FROM_ADDRESS": (("email",), "from_address"),
}


def _apply_env_overrides(config_data: Dict[str, Any], environ: Dict[str, str]) -> Dict[str, Any]:
    for env_name, (path, key) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        section = config_data
        for part in path:
            section = section.setdefault(part, {})
        section[key] = value
    return config_data


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> AppSettings:
    """
    Load and validate application settings

    Values come from an optional YAML file and are overridden by
    environment variables.

    Args:
        config_path: Path to a YAML config file. Defaults to $APP_CONFIG_PATH
            when set; with neither, only the environment is used.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Validated AppSettings object

    Raises:
        FileNotFoundError: If an explicitly named config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    environ = dict(os.environ if environ is None else environ)

    if config_path is None and environ.get("APP_CONFIG_PATH"):
        config_path = Path(environ["APP_CONFIG_PATH"])

    config_data: Dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

    config_data = _apply_env_overrides(config_data, environ)

    try:
        settings = AppSettings(**config_data)
        logger.info("Loaded settings (config file: %s)", config_path or "none")
        return settings
    except ValidationError as e:
        logger.error("Config validation failed: %s", e)
        raise
