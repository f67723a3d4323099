"""Access codes gate unauthenticated client signing of one contract."""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from src.lifecycle.clock import Clock, utcnow

logger = logging.getLogger(__name__)

ACCESS_CODE_TTL = timedelta(days=7)
ACCESS_CODE_LENGTH = 10
# No 0/O, 1/I/L: codes are typed in by hand from an email.
ACCESS_CODE_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"


def generate_access_code(length: int = ACCESS_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


class AccessCodeIssuer:
    def __init__(self, db, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock

    def new_code(self):
        """Return ``(code, expires_at)`` without storing anything."""
        return generate_access_code(), self.clock() + ACCESS_CODE_TTL

    def issue(self, contract_id: str):
        code, expires_at = self.new_code()
        access = self.db.add_access_code(
            contract_id=contract_id,
            access_code=code,
            expires_at=expires_at,
            created_at=self.clock(),
        )
        logger.info("Issued access code for contract %s (expires %s)", contract_id, expires_at.isoformat())
        return access

    def find_valid(self, contract_id: str) -> Optional[object]:
        return self.db.get_latest_valid_access_code(contract_id, self.clock())

    def verify(self, contract_ref: str, code: str) -> bool:
        if not code:
            return False
        return self.db.find_valid_access_code(contract_ref, code.strip().upper(), self.clock()) is not None
