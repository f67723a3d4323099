import pytest

from src.integrations.contracts.interfaces import (
    PaymentInitiationResult,
    PaymentProvider,
    PaymentRequest,
    PaymentStatus,
    PaymentVerificationResult,
    Provider,
)
from src.lifecycle.errors import ContractValidationError, NotFoundError, PaymentProcessingError


def _request(contract_ref, **overrides):
    data = dict(
        amount=1500.0,
        currency="RWF",
        contract_ref=contract_ref,
        payer_email="aline@example.rw",
        payer_name="Aline Uwase",
        payer_phone="250788123456",
    )
    data.update(overrides)
    return PaymentRequest(**data)


class ScriptedProvider(PaymentProvider):
    """Card-style provider whose verification outcome is set by the test."""

    def __init__(self, status=PaymentStatus.COMPLETED, fail=False):
        self.status = status
        self.fail = fail
        self.calls = 0

    @property
    def provider(self) -> Provider:
        return Provider.STRIPE

    async def initiate(self, request):
        self.calls += 1
        if self.fail:
            raise PaymentProcessingError()
        return PaymentInitiationResult(
            provider=self.provider,
            transaction_ref=f"EGREED-{request.contract_ref}-1",
            transaction_id="pi_1",
            amount=request.amount,
            currency=request.currency.upper(),
            continuation_token="pi_1_secret",
        )

    async def verify(self, transaction_id):
        return PaymentVerificationResult(
            status=self.status,
            amount=1500.0,
            currency="USD",
            external_transaction_id=transaction_id,
        )


@pytest.mark.asyncio
async def test_mobile_money_payment_marks_contract_paid(orchestrator, contract, db):
    result = await orchestrator.initiate("momo", _request(contract.contract_ref), momo_provider="mtn")

    payments = db.list_payments(contract.id)
    assert len(payments) == 1
    assert payments[0].status == "pending"
    assert payments[0].method == "MOBILE_MONEY"
    assert payments[0].provider == "MTN_RW"

    verified = await orchestrator.verify("momo", result.transaction_id, momo_provider="mtn")
    assert verified.status is PaymentStatus.COMPLETED

    updated = db.get_contract_by_ref(contract.contract_ref)
    assert updated.payment_status == "PAID"
    assert updated.payment_method == "MOBILE_MONEY"
    assert updated.transaction_id == result.transaction_id
    assert updated.payment_date is not None
    # Payment never completes a contract on its own.
    assert updated.status == "DRAFT"
    assert db.list_payments(contract.id)[0].status == "completed"


@pytest.mark.asyncio
async def test_mobile_money_requires_phone(orchestrator, contract, db):
    with pytest.raises(ContractValidationError) as exc:
        await orchestrator.initiate("momo", _request(contract.contract_ref, payer_phone=None), momo_provider="airtel")
    assert "payer_phone is required for mobile money" in exc.value.errors
    assert db.list_payments(contract.id) == []


@pytest.mark.asyncio
async def test_invalid_request_never_reaches_provider(orchestrator, registry, contract):
    provider = ScriptedProvider()
    registry.register("stripe", provider)
    with pytest.raises(ContractValidationError):
        await orchestrator.initiate("stripe", _request(contract.contract_ref, amount=0))
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_unknown_provider_is_rejected(orchestrator, contract):
    with pytest.raises(ContractValidationError):
        await orchestrator.initiate("bitcoin", _request(contract.contract_ref))
    with pytest.raises(ContractValidationError):
        await orchestrator.initiate("momo", _request(contract.contract_ref), momo_provider="tigo")


@pytest.mark.asyncio
async def test_provider_failure_records_nothing(orchestrator, registry, contract, db):
    registry.register("stripe", ScriptedProvider(fail=True))
    with pytest.raises(PaymentProcessingError):
        await orchestrator.initiate("stripe", _request(contract.contract_ref, currency="USD"))
    assert db.list_payments(contract.id) == []


@pytest.mark.asyncio
async def test_pending_verification_leaves_contract_unpaid(orchestrator, registry, contract, db):
    registry.register("stripe", ScriptedProvider(status=PaymentStatus.PENDING))
    await orchestrator.initiate("stripe", _request(contract.contract_ref, currency="USD"))

    result = await orchestrator.verify("stripe", "pi_1")

    assert result.status is PaymentStatus.PENDING
    assert db.get_contract_by_ref(contract.contract_ref).payment_status == "PENDING"


@pytest.mark.asyncio
async def test_failed_verification_updates_local_payment(orchestrator, registry, contract, db):
    registry.register("stripe", ScriptedProvider(status=PaymentStatus.FAILED))
    await orchestrator.initiate("stripe", _request(contract.contract_ref, currency="USD"))
    await orchestrator.verify("stripe", "pi_1")

    assert db.get_payment_by_transaction_id("pi_1").status == "failed"
    assert db.get_contract_by_ref(contract.contract_ref).payment_status == "PENDING"


@pytest.mark.asyncio
async def test_repeat_verification_is_idempotent(orchestrator, registry, contract, db):
    registry.register("stripe", ScriptedProvider())
    await orchestrator.initiate("stripe", _request(contract.contract_ref, currency="USD"))

    await orchestrator.verify("stripe", "pi_1")
    version_after_first = db.get_contract_by_ref(contract.contract_ref).version
    await orchestrator.verify("stripe", "pi_1")

    updated = db.get_contract_by_ref(contract.contract_ref)
    assert updated.payment_status == "PAID"
    assert updated.payment_method == "STRIPE"
    assert updated.version == version_after_first


@pytest.mark.asyncio
async def test_unknown_contract_is_not_charged(orchestrator, registry):
    provider = ScriptedProvider()
    registry.register("stripe", provider)
    with pytest.raises(NotFoundError):
        await orchestrator.initiate("stripe", _request("EG-IoT-2025-404", currency="USD"))
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_non_finite_amount_never_reaches_provider(orchestrator, registry, contract):
    provider = ScriptedProvider()
    registry.register("stripe", provider)
    with pytest.raises(ContractValidationError) as exc:
        await orchestrator.initiate("stripe", _request(contract.contract_ref, amount=float("nan"), currency="USD"))
    assert "amount must be greater than zero" in exc.value.errors
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_verify_requires_transaction_id(orchestrator):
    with pytest.raises(ContractValidationError):
        await orchestrator.verify("momo", "  ", momo_provider="mtn")


@pytest.mark.asyncio
async def test_completed_payment_is_not_downgraded(orchestrator, registry, contract, db):
    provider = ScriptedProvider()
    registry.register("stripe", provider)
    await orchestrator.initiate("stripe", _request(contract.contract_ref, currency="USD"))
    await orchestrator.verify("stripe", "pi_1")

    provider.status = PaymentStatus.PENDING
    await orchestrator.verify("stripe", "pi_1")

    assert db.get_payment_by_transaction_id("pi_1").status == "completed"
    assert db.get_contract_by_ref(contract.contract_ref).payment_status == "PAID"
