import logging
from typing import Any, Dict, Optional

from src.lifecycle.clock import Clock, utcnow

logger = logging.getLogger(__name__)

SIGNED_CLIENT = "signed_client"
SIGNED_DEVELOPER = "signed_developer"


class AuditLogWriter:
    """Append-only signature audit trail."""

    def __init__(self, db, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock

    def record(
        self,
        contract_id: str,
        action: str,
        *,
        client_id: Optional[str] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        try:
            return self.db.add_signature_audit(
                contract_id=contract_id,
                action=action,
                client_id=client_id,
                user_id=user_id,
                ip_address=ip_address,
                metadata=metadata,
                created_at=self.clock(),
            )
        except Exception:
            # The signing mutation is already committed at this point.
            logger.exception("Audit write failed: contract=%s action=%s", contract_id, action)
            raise

    def history(self, contract_id: str):
        return self.db.list_signature_audits(contract_id)
