from pathlib import Path

import pytest
from pydantic import ValidationError

from src.utils.config_loader import load_settings


def test_defaults_without_file_or_env():
    settings = load_settings(environ={})
    assert settings.platform_name == "Egreed Technology"
    assert settings.contract_segment == "IoT"
    assert settings.email.smtp_enabled is False
    assert settings.payments.mobile_money.default_currency == "RWF"


def test_yaml_file_then_env_overrides(tmp_path):
    config = tmp_path / "app.yml"
    config.write_text(
        "contract_segment: Web\n"
        "payments:\n"
        "  stripe:\n"
        "    secret_key: sk_from_file\n"
        "  paypal:\n"
        "    client_id: file-client\n"
        "email:\n"
        "  smtp_port: 2525\n",
        encoding="utf-8",
    )

    settings = load_settings(config, environ={
        "STRIPE_SECRET_KEY": "sk_from_env",
        "SMTP_ENABLED": "true",
        "MTN_MOMO_API_USER": "momo-user",
    })

    assert settings.contract_segment == "Web"
    assert settings.payments.stripe.secret_key == "sk_from_env"
    assert settings.payments.paypal.client_id == "file-client"
    assert settings.payments.mobile_money.api_user == "momo-user"
    assert settings.email.smtp_enabled is True
    assert settings.email.smtp_port == 2525


def test_config_path_from_environment(tmp_path):
    config = tmp_path / "app.yml"
    config.write_text("platform_name: Egreed Staging\n", encoding="utf-8")
    settings = load_settings(environ={"APP_CONFIG_PATH": str(config)})
    assert settings.platform_name == "Egreed Staging"


def test_missing_explicit_file():
    with pytest.raises(FileNotFoundError):
        load_settings(Path("/nonexistent/app.yml"), environ={})


def test_invalid_values_raise():
    with pytest.raises(ValidationError):
        load_settings(environ={"SMTP_PORT": "not-a-port"})
