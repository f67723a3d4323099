from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from src.integrations.contracts.interfaces import PaymentStatus


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class VerificationResponseModel(BaseModel):
    status: PaymentStatus
    amount: float = Field(ge=0)
    currency: str
    external_transaction_id: str
    raw: Dict[str, Any] = Field(default_factory=dict)


STRIPE_STATUS_MAP: Dict[str, PaymentStatus] = {
    "SUCCEEDED": PaymentStatus.COMPLETED,
    "PROCESSING": PaymentStatus.PENDING,
    "REQUIRES_PAYMENT_METHOD": PaymentStatus.PENDING,
    "REQUIRES_CONFIRMATION": PaymentStatus.PENDING,
    "REQUIRES_ACTION": PaymentStatus.PENDING,
    "REQUIRES_CAPTURE": PaymentStatus.PENDING,
    "CANCELED": PaymentStatus.FAILED,
    "PAYMENT_FAILED": PaymentStatus.FAILED,
}

FLUTTERWAVE_STATUS_MAP: Dict[str, PaymentStatus] = {
    "SUCCESSFUL": PaymentStatus.COMPLETED,
    "SUCCESS": PaymentStatus.COMPLETED,
    "PENDING": PaymentStatus.PENDING,
    "FAILED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.FAILED,
}

PAYPAL_STATUS_MAP: Dict[str, PaymentStatus] = {
    "CREATED": PaymentStatus.PENDING,
    "SAVED": PaymentStatus.PENDING,
    "APPROVED": PaymentStatus.PENDING,
    "PAYER_ACTION_REQUIRED": PaymentStatus.PENDING,
    "COMPLETED": PaymentStatus.COMPLETED,
    "VOIDED": PaymentStatus.FAILED,
}


def normalize_verification_response(
    raw: Dict[str, Any],
    *,
    status_map: Mapping[str, PaymentStatus],
    fallback_transaction_id: str,
    fallback_currency: str = "USD",
) -> VerificationResponseModel:
    status = map_payment_status(_first_non_empty(raw, "status"), status_map)
    amount = _coerce_amount(_first_non_empty(raw, "amount", default=0), "verified amount")
    currency = str(_first_non_empty(raw, "currency", default=fallback_currency)).upper()
    transaction_id = str(_first_non_empty(raw, "id", "transaction_id", default=fallback_transaction_id))

    return _build_model(
        VerificationResponseModel,
        {
            "status": status,
            "amount": amount,
            "currency": currency,
            "external_transaction_id": transaction_id,
            "raw": raw,
        },
        raw,
    )


def map_payment_status(raw_status: Any, status_map: Mapping[str, PaymentStatus]) -> PaymentStatus:
    value = str(raw_status or "").strip().upper()
    if value not in status_map:
        raise IntegrationResponseError(f"Unsupported payment status '{value}'.")
    return status_map[value]


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _coerce_amount(value: Any, label: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid {label}: {value!r}") from exc
    if amount < 0:
        raise IntegrationResponseError(f"{label.capitalize()} must be >= 0; got {amount}.")
    return amount


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
