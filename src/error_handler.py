"""Maps exceptions to API responses."""
from typing import Any, Dict, Tuple
import logging

from src.lifecycle.errors import LifecycleError

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Tuple[int, Dict[str, Any]]:
        if isinstance(exc, LifecycleError):
            if exc.status_code >= 500:
                # Cause was logged at the adapter boundary; only the generic message goes out.
                logger.warning("Provider failure surfaced to caller: %s (%s)", exc.message, type(exc).__name__)
            else:
                logger.info("Request rejected: %s (%s)", exc.message, type(exc).__name__)
            payload: Dict[str, Any] = {"error": type(exc).__name__, "message": exc.message}
            if exc.details.get("errors"):
                payload["errors"] = exc.details["errors"]
            return exc.status_code, payload

        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return 500, {
            "error": "InternalError",
            "message": "An internal error occurred while processing your request. Please try again later.",
            "context": context or {},
        }
