"""Checkout service exceptions and the reconciliation anomaly log."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.error_handler import ServiceError
from libs.common.logging import get_logger

logger = get_logger(__name__)


class CheckoutServiceError(ServiceError):
    """Base exception for checkout service failures."""


class CheckoutValidationError(CheckoutServiceError):
    """Caller input rejected before any side effect."""

    http_status = 400
    public_error = None

    def __init__(self, message: str, details: Optional[list[str]] = None):
        super().__init__(message, details or [message])


class GatewayError(CheckoutServiceError):
    """Payment provider failure, timeout, or unusable response."""

    public_error = "Error creating payment preference"

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)

    def log_fields(self) -> dict:
        return {"gateway_status": self.status_code}


class PersistenceError(CheckoutServiceError):
    """Order storage failure."""

    public_error = "Error saving order"


class AuthenticityError(CheckoutServiceError):
    """Inbound webhook failed signature verification."""

    http_status = 401
    public_error = "Invalid signature"


# ---------------------------------------------------------------------------
# Anomalies (logged conditions, never raised)
# ---------------------------------------------------------------------------

ANOMALY_UNKNOWN_REFERENCE = "unknown_reference"
ANOMALY_MISSING_EXTERNAL_REFERENCE = "missing_external_reference"
ANOMALY_ORPHANED_PREFERENCE = "orphaned_preference"


@dataclass(frozen=True)
class ReconciliationAnomaly:
    kind: str
    reference: Optional[str] = None
    payment_id: Optional[str] = None
    preference_id: Optional[str] = None
    detail: str = ""
    recorded_at: datetime = field(default_factory=utc_now)


class AnomalyLog:
    """Bounded record of reconciliation anomalies, mirrored to the log."""

    def __init__(self, maxlen: int = 1000):
        self._entries: deque[ReconciliationAnomaly] = deque(maxlen=maxlen)

    def record(self, anomaly: ReconciliationAnomaly) -> ReconciliationAnomaly:
        self._entries.append(anomaly)
        logger.warning(
            "Reconciliation anomaly: %s (reference=%s, payment_id=%s) %s",
            anomaly.kind,
            anomaly.reference,
            anomaly.payment_id,
            anomaly.detail,
            extra={
                "extra_fields": {
                    "anomaly": anomaly.kind,
                    "reference": anomaly.reference,
                    "payment_id": anomaly.payment_id,
                    "preference_id": anomaly.preference_id,
                }
            },
        )
        return anomaly

    def entries(self, kind: Optional[str] = None) -> list[ReconciliationAnomaly]:
        if kind is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.kind == kind]

    def __len__(self) -> int:
        return len(self._entries)
