"""
Payment contract: validation and reference helpers shared by every
payment provider client (card processor, PayPal, aggregator, mobile money).

These helpers must be used by both:
- clients/mocks/* (stubbed providers)
- clients/real_http/* (real API calls)
"""

import math
import time
from typing import List, Optional

from .interfaces import PaymentRequest

PLATFORM_PREFIX = "EGREED"


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------

def build_transaction_reference(
    prefix: str,
    contract_ref: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> str:
    """
    ``<PREFIX>-<contractRef>-<epoch-millis>`` or ``<PREFIX>-<epoch-millis>``
    when no contract reference is given.
    """
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    if contract_ref:
        return f"{prefix}-{contract_ref}-{millis}"
    return f"{prefix}-{millis}"


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def from_minor_units(amount: int) -> float:
    return amount / 100


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def validate_payment_request(request: PaymentRequest, *, phone_required: bool = False) -> List[str]:
    """
    Return a list of validation errors.
    Empty list means the request is valid.
    """
    errors: List[str] = []

    if not request.contract_ref:
        errors.append("contract_ref is required")
    if request.amount is None or not math.isfinite(request.amount) or request.amount <= 0:
        errors.append("amount must be greater than zero")
    if not request.currency:
        errors.append("currency is required")
    if not request.payer_email:
        errors.append("payer_email is required")
    if not request.payer_name:
        errors.append("payer_name is required")

    if phone_required:
        phone = (request.payer_phone or "").lstrip("+")
        if not phone:
            errors.append("payer_phone is required for mobile money")
        elif not phone.isdigit() or len(phone) < 9:
            errors.append(f"payer_phone '{request.payer_phone}' does not look valid")

    return errors
