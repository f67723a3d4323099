from src.error_handler import ErrorHandler
from src.lifecycle.errors import (
    AuthorizationError,
    ConcurrentUpdateError,
    ContractValidationError,
    NotFoundError,
    PaymentProcessingError,
)


def test_handle_exception_returns_payload():
    eh = ErrorHandler()
    status, out = eh.handle_exception(Exception("boom"), context={"k": "v"})
    assert status == 500
    assert out["error"] == "InternalError"
    assert "internal error" in out["message"].lower()
    assert "boom" not in out["message"]
    assert out["context"] == {"k": "v"}


def test_lifecycle_errors_map_to_status_codes():
    eh = ErrorHandler()
    assert eh.handle_exception(AuthorizationError())[0] == 401
    assert eh.handle_exception(NotFoundError())[0] == 404
    assert eh.handle_exception(ConcurrentUpdateError())[0] == 409

    status, out = eh.handle_exception(ContractValidationError(errors=["title is required", "amount must be greater than zero"]))
    assert status == 422
    assert out["errors"] == ["title is required", "amount must be greater than zero"]
    assert out["message"] == "title is required; amount must be greater than zero"


def test_provider_errors_stay_generic():
    eh = ErrorHandler()
    try:
        try:
            raise RuntimeError("card_declined: sk_live_abc")
        except RuntimeError as exc:
            raise PaymentProcessingError() from exc
    except PaymentProcessingError as err:
        status, out = eh.handle_exception(err)

    assert status == 502
    assert out == {"error": "PaymentProcessingError", "message": "Payment processing failed"}
