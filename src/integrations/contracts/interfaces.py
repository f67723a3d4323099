from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Provider(str, Enum):
    STRIPE = "STRIPE"
    PAYPAL = "PAYPAL"
    FLUTTERWAVE = "FLUTTERWAVE"
    MTN = "MTN_RW"
    AIRTEL = "AIRTEL_RW"
    MPESA = "MPESA"


class ResultKind(str, Enum):
    REDIRECT = "redirect"
    CONTINUATION = "continuation"
    PENDING = "pending"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class PaymentRequest:
    amount: float
    currency: str
    contract_ref: str
    payer_email: str
    payer_name: str
    payer_phone: Optional[str] = None
    redirect_url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentInitiationResult:
    """
    Normalized envelope returned by every provider.

    Exactly one of ``redirect_url``, ``continuation_token`` or
    ``pending_message`` is set.
    """
    provider: Provider
    transaction_ref: str
    transaction_id: str
    amount: float
    currency: str
    redirect_url: Optional[str] = None
    continuation_token: Optional[str] = None
    pending_message: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        present = [
            value for value in (self.redirect_url, self.continuation_token, self.pending_message)
            if value
        ]
        if len(present) != 1:
            raise ValueError(
                "PaymentInitiationResult needs exactly one of redirect_url, "
                "continuation_token or pending_message"
            )

    @property
    def kind(self) -> ResultKind:
        if self.redirect_url:
            return ResultKind.REDIRECT
        if self.continuation_token:
            return ResultKind.CONTINUATION
        return ResultKind.PENDING


@dataclass
class PaymentVerificationResult:
    status: PaymentStatus
    amount: float
    currency: str
    external_transaction_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Abstract provider interface
# ---------------------------------------------------------------------------

class PaymentProvider(ABC):
    """Every payment provider client must implement this interface."""

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """Return the provider enum value."""

    @abstractmethod
    async def initiate(self, request: PaymentRequest) -> PaymentInitiationResult:
        """Start a collection and return where the payer goes next."""

    @abstractmethod
    async def verify(self, transaction_id: str) -> PaymentVerificationResult:
        """Ask the provider what happened to a previously initiated payment."""
