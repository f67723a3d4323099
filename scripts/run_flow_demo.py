#!/usr/bin/env python3
"""
Run a full contract flow against the in-memory store and print each stage:
create, client signature, developer signature, mobile money payment, complete.

Usage (from repo root):
  python scripts/run_flow_demo.py
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.database.postgres import PostgresDB
from src.integrations.clients.registry import PaymentProviderRegistry
from src.integrations.contracts.interfaces import PaymentRequest
from src.integrations.email.email_service import ConsoleEmailSender
from src.lifecycle.notifications import NotificationTrigger
from src.lifecycle.payments import PaymentOrchestrator
from src.lifecycle.state_machine import ContractService
from src.utils.config_loader import load_settings


def setup_logging():
    """Log to terminal at INFO so every stage is visible."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def print_stage(title: str, data: dict | list | str):
    """Print a stage header and data to the terminal."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)
    print()


async def main():
    setup_logging()
    settings = load_settings()
    db = PostgresDB()
    outbox = ConsoleEmailSender()
    service = ContractService(
        db,
        NotificationTrigger(outbox, settings.app_base_url, platform_name=settings.platform_name),
        contract_segment=settings.contract_segment,
    )
    payments = PaymentOrchestrator(db, PaymentProviderRegistry.from_settings(settings), service)

    client = db.create_client(full_name="Aline Uwase", email="aline@example.rw", phone="250788123456")
    contract = service.create_contract(
        issuer_id="demo-developer",
        client_id=client.id,
        title="Smart meter rollout",
        amount=150000,
        currency="RWF",
    )
    print_stage("CONTRACT CREATED", asdict(contract))
    print_stage("EMAIL TO CLIENT", outbox.outbox[-1].body)

    code = db.list_access_codes(contract.id)[0].access_code
    signed = service.sign_as_client(contract.contract_ref, "Aline Uwase", code, ip_address="127.0.0.1")
    print_stage("CLIENT SIGNED", {"status": signed.status, "client_signed_at": signed.client_signed_at})

    finalized = service.sign_as_developer(contract.contract_ref, "Egreed Technology", acting_user_id="demo-developer")
    print_stage("DEVELOPER SIGNED", {"status": finalized.status, "signed_at": finalized.signed_at})

    initiated = await payments.initiate(
        "momo",
        PaymentRequest(
            amount=contract.amount,
            currency=contract.currency,
            contract_ref=contract.contract_ref,
            payer_email=client.email,
            payer_name=client.full_name,
            payer_phone=client.phone,
        ),
        momo_provider="mtn",
    )
    print_stage("PAYMENT INITIATED", {"kind": initiated.kind.value, "message": initiated.pending_message,
                                      "transaction_id": initiated.transaction_id})

    verified = await payments.verify("momo", initiated.transaction_id, momo_provider="mtn")
    print_stage("PAYMENT VERIFIED", {"status": verified.status.value, "amount": verified.amount})
    print_stage("SIGNATURE STATUS", service.get_signature_status(contract.contract_ref))

    completed = service.complete(contract.contract_ref)
    print_stage("CONTRACT COMPLETED", {"status": completed.status, "version": completed.version})

    print("\n" + "=" * 60)
    print("  Demo complete. Check logs above for each stage.")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
