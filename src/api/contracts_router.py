"""
Contract routes: clients, contract creation, signing, payment status,
reminders and the remaining lifecycle transitions.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field, field_validator

from src.api.dependencies import (
    get_client_ip,
    get_contract_service,
    get_current_user_id,
    get_db,
)
from src.lifecycle.errors import ContractValidationError
from src.lifecycle.state_machine import ContractService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contracts"])


# ============================================================================
# REQUEST MODELS
# ============================================================================

class ClientCreateRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("email must be a valid address")
        return value


class ContractCreateRequest(BaseModel):
    client_id: str
    title: str
    amount: float
    currency: str = "USD"
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ClientSignRequest(BaseModel):
    signature: str
    access_code: str


class DeveloperSignRequest(BaseModel):
    signature: str


class PaymentStatusRequest(BaseModel):
    payment_status: str = Field(..., description="PENDING, PARTIAL or PAID")
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None


# ============================================================================
# SERIALIZATION
# ============================================================================

_CONTRACT_FIELDS = (
    "id",
    "contract_ref",
    "client_id",
    "developer_id",
    "title",
    "description",
    "amount",
    "currency",
    "start_date",
    "end_date",
    "status",
    "client_signed_at",
    "developer_signed_at",
    "signed_at",
    "payment_status",
    "payment_method",
    "transaction_id",
    "payment_date",
    "version",
    "created_at",
    "updated_at",
)

_PAYMENT_FIELDS = (
    "id",
    "provider",
    "method",
    "transaction_ref",
    "transaction_id",
    "amount",
    "currency",
    "status",
    "created_at",
    "updated_at",
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize(obj: Any, fields) -> Dict[str, Any]:
    return {name: _jsonable(getattr(obj, name, None)) for name in fields}


def contract_to_dict(contract) -> Dict[str, Any]:
    # Signatures and access codes stay server-side.
    data = _serialize(contract, _CONTRACT_FIELDS)
    data["client_signed"] = contract.client_signed_at is not None
    data["developer_signed"] = contract.developer_signed_at is not None
    return data


# ============================================================================
# CLIENTS
# ============================================================================

@router.post("/clients", status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_db),
):
    client = db.create_client(full_name=body.full_name.strip(), email=body.email, phone=body.phone)
    logger.info("Client %s created by %s", client.id, user_id)
    return {
        "id": client.id,
        "full_name": client.full_name,
        "email": client.email,
        "phone": client.phone,
        "created_at": _jsonable(client.created_at),
    }


# ============================================================================
# CONTRACTS
# ============================================================================

@router.post("/contracts", status_code=status.HTTP_201_CREATED)
async def create_contract(
    body: ContractCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
):
    contract = service.create_contract(
        issuer_id=user_id,
        client_id=body.client_id,
        title=body.title,
        amount=body.amount,
        currency=body.currency,
        description=body.description,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return contract_to_dict(contract)


@router.get("/contracts")
async def list_contracts(
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
) -> List[Dict[str, Any]]:
    return [contract_to_dict(c) for c in service.list_contracts()]


@router.get("/contracts/{contract_ref}")
async def get_contract(
    contract_ref: str,
    service: ContractService = Depends(get_contract_service),
    db=Depends(get_db),
):
    contract = service.get_contract(contract_ref)
    data = contract_to_dict(contract)
    data["payments"] = [_serialize(p, _PAYMENT_FIELDS) for p in db.list_payments(contract.id)]
    return data


@router.get("/contracts/{contract_ref}/signature-status")
async def get_signature_status(
    contract_ref: str,
    service: ContractService = Depends(get_contract_service),
):
    return service.get_signature_status(contract_ref)


@router.post("/contracts/{contract_ref}/sign/client")
async def sign_as_client(
    contract_ref: str,
    body: ClientSignRequest,
    request: Request,
    service: ContractService = Depends(get_contract_service),
):
    service.sign_as_client(
        contract_ref,
        signature=body.signature,
        access_code=body.access_code,
        ip_address=get_client_ip(request),
    )
    return {"success": True, "message": "Contract signed successfully"}


@router.post("/contracts/{contract_ref}/sign/developer")
async def sign_as_developer(
    contract_ref: str,
    body: DeveloperSignRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
):
    service.sign_as_developer(
        contract_ref,
        signature=body.signature,
        acting_user_id=user_id,
        ip_address=get_client_ip(request),
    )
    return {"success": True, "message": "Contract finalized successfully"}


@router.post("/contracts/{contract_ref}/payment-status")
async def update_payment_status(
    contract_ref: str,
    body: PaymentStatusRequest,
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
):
    if not body.payment_status.strip():
        raise ContractValidationError(errors=["payment_status is required"])
    contract = service.update_payment_status(
        contract_ref,
        body.payment_status,
        transaction_id=body.transaction_id,
        method=body.payment_method,
    )
    return contract_to_dict(contract)


@router.post("/contracts/{contract_ref}/reminder")
async def send_reminder(
    contract_ref: str,
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
):
    service.send_reminder(contract_ref)
    return {"success": True, "message": "Reminder sent"}


@router.post("/contracts/{contract_ref}/expire")
async def expire_contract(
    contract_ref: str,
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
):
    return contract_to_dict(service.expire(contract_ref))


@router.post("/contracts/{contract_ref}/complete")
async def complete_contract(
    contract_ref: str,
    user_id: str = Depends(get_current_user_id),
    service: ContractService = Depends(get_contract_service),
):
    return contract_to_dict(service.complete(contract_ref))
