from datetime import datetime, timedelta

from src.lifecycle.access_codes import (
    ACCESS_CODE_ALPHABET,
    ACCESS_CODE_LENGTH,
    AccessCodeIssuer,
    generate_access_code,
)
from src.lifecycle.clock import FrozenClock


def test_generated_codes_use_unambiguous_alphabet():
    codes = {generate_access_code() for _ in range(200)}
    assert len(codes) == 200
    for code in codes:
        assert len(code) == ACCESS_CODE_LENGTH
        assert set(code) <= set(ACCESS_CODE_ALPHABET)
    assert not set("01ILO") & set(ACCESS_CODE_ALPHABET)


def test_issue_and_verify(db, contract):
    clock = FrozenClock(datetime(2025, 3, 15))
    issuer = AccessCodeIssuer(db, clock=clock)

    access = issuer.issue(contract.id)
    assert access.expires_at == datetime(2025, 3, 22)
    assert issuer.verify(contract.contract_ref, access.access_code) is True
    assert issuer.verify(contract.contract_ref, "") is False
    assert issuer.verify("EG-IoT-2025-999", access.access_code) is False

    clock.advance(timedelta(days=7))
    assert issuer.verify(contract.contract_ref, access.access_code) is False


def test_find_valid_returns_latest_unexpired(db, contract, clock):
    issuer = AccessCodeIssuer(db, clock=clock)
    clock.advance(timedelta(hours=1))
    newer = issuer.issue(contract.id)

    assert issuer.find_valid(contract.id).access_code == newer.access_code

    clock.advance(timedelta(days=8))
    assert issuer.find_valid(contract.id) is None


def test_older_codes_stay_valid_until_they_expire(db, contract, access_code, clock):
    first = access_code()
    issuer = AccessCodeIssuer(db, clock=clock)
    issuer.issue(contract.id)
    assert issuer.verify(contract.contract_ref, first) is True
