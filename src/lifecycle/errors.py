"""Error kinds raised by the contract lifecycle and payment layers.

Each kind carries the HTTP status the API maps it to and a user-facing
message. Provider errors always use their generic message so provider
internals never reach the client.
"""

from typing import Any, Dict, List, Optional


class LifecycleError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ContractValidationError(LifecycleError):
    status_code = 422
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[List[str]] = None) -> None:
        super().__init__(message or "; ".join(errors or []) or None, details={"errors": errors or []})
        self.errors = errors or []


class AuthorizationError(LifecycleError):
    status_code = 401
    default_message = "Invalid or expired access code"


class NotFoundError(LifecycleError):
    status_code = 404
    default_message = "Contract not found"


class ContractStateError(LifecycleError):
    status_code = 409
    default_message = "Contract is not in a state that allows this action"


class ConcurrentUpdateError(ContractStateError):
    default_message = "Contract was modified by another request; reload and retry"


class ExternalProviderError(LifecycleError):
    status_code = 502
    default_message = "Payment provider error"


class PaymentProcessingError(ExternalProviderError):
    default_message = "Payment processing failed"


class PaymentVerificationError(ExternalProviderError):
    default_message = "Transaction verification failed"
