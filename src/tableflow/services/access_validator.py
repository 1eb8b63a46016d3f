"""
Access validation for anonymous (QR code) order requests.

Decides whether a customer order for a table is allowed, rejected because the
QR scan is stale, or silently redirected to the table the device already
ordered from. Staff requests carry no validation data and always pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tableflow.device_session import TableAccessValidation, now_ms
from tableflow.error_catalog import ACCESS_EXPIRED
from tableflow.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_ACCESS_TTL_MINUTES = 10
ACCESS_EXPIRED_MESSAGE = "Table access expired. Please scan the QR code again."


class AccessOutcome(str, Enum):
    ALLOW = "allow"
    REJECT = "reject"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class AccessDecision:
    outcome: AccessOutcome
    reason: str | None = None
    code: str | None = None
    redirect_table_id: int | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == AccessOutcome.ALLOW


ALLOW = AccessDecision(AccessOutcome.ALLOW)


def validate_table_access(
    table_id: int,
    validation: TableAccessValidation | None,
    *,
    now: int | None = None,
    ttl_minutes: int = DEFAULT_ACCESS_TTL_MINUTES,
) -> AccessDecision:
    """
    Check a customer's validation hints for ``table_id``.

    Timestamps are epoch milliseconds as produced by the client. A timestamp of
    0 means "no record" and is never treated as stale.
    """
    if validation is None:
        return ALLOW

    now = now if now is not None else now_ms()
    accessed_at = validation.table_access_timestamp or 0
    if accessed_at > 0:
        age_ms = now - accessed_at
        if age_ms > ttl_minutes * 60 * 1000:
            logger.info(
                "Rejected stale table access: table=%s fingerprint=%s age_ms=%s",
                table_id,
                validation.fingerprint,
                age_ms,
            )
            return AccessDecision(
                AccessOutcome.REJECT, reason=ACCESS_EXPIRED_MESSAGE, code=ACCESS_EXPIRED
            )

    original = validation.original_table_id
    if original and original != table_id:
        logger.info(
            "Redirecting device %s from table %s to locked table %s",
            validation.fingerprint,
            table_id,
            original,
        )
        return AccessDecision(AccessOutcome.REDIRECT, redirect_table_id=original)

    return ALLOW
