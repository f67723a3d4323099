from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_payment_orchestrator
from src.integrations.contracts.interfaces import PaymentInitiationResult, PaymentRequest
from src.lifecycle.payments import PaymentOrchestrator

api = APIRouter()
payments_api = api


class PaymentInitiateRequest(BaseModel):
    provider: str = Field(..., description="stripe, paypal, flutterwave or momo")
    momo_provider: Optional[str] = Field(default=None, description="mtn, airtel or mpesa when provider is momo")
    amount: float
    currency: str = "USD"
    contract_ref: str
    email: str
    name: str
    phone: Optional[str] = None
    redirect_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PaymentVerifyRequest(BaseModel):
    provider: str
    transaction_id: str
    momo_provider: Optional[str] = None


def _initiation_to_dict(result: PaymentInitiationResult) -> Dict[str, Any]:
    return {
        "success": True,
        "provider": result.provider.value,
        "kind": result.kind.value,
        "transaction_id": result.transaction_id,
        "transaction_ref": result.transaction_ref,
        "amount": result.amount,
        "currency": result.currency,
        "redirect_url": result.redirect_url,
        "continuation_token": result.continuation_token,
        "pending_message": result.pending_message,
        "created_at": result.created_at.isoformat(),
    }


@api.post("/initiate", tags=["Payments"])
async def initiate_payment(
    request: PaymentInitiateRequest,
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator),
):
    payment_request = PaymentRequest(
        amount=request.amount,
        currency=request.currency,
        contract_ref=request.contract_ref,
        payer_email=request.email,
        payer_name=request.name,
        payer_phone=request.phone,
        redirect_url=request.redirect_url,
        metadata=request.metadata,
    )
    result = await orchestrator.initiate(request.provider, payment_request, momo_provider=request.momo_provider)
    return _initiation_to_dict(result)


@api.post("/verify", tags=["Payments"])
async def verify_payment(
    request: PaymentVerifyRequest,
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator),
):
    result = await orchestrator.verify(request.provider, request.transaction_id, momo_provider=request.momo_provider)
    return {
        "status": result.status.value,
        "amount": result.amount,
        "currency": result.currency,
        "transaction_id": result.external_transaction_id,
    }
