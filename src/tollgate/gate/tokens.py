"""Confirmation Token Issuer.

Two-step confirmation for critical-file writes: an operator issues a token,
then the write presents it. Tokens are one-shot and time-boxed, and at most
one is outstanding per gate context; issuing a new one replaces the old.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from tollgate.gate.types import HighRiskToken

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 60


@dataclass(frozen=True, slots=True)
class TokenCheck:
    """Result of presenting a token."""

    valid: bool
    reason: str = ""


class ConfirmationTokenIssuer:
    """Issues and consumes one-shot high-risk tokens.

    Validation order is fixed: no token issued, already used, expired,
    mismatch. A used, expired, or mismatched token never validates.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._token: HighRiskToken | None = None

    @property
    def outstanding(self) -> HighRiskToken | None:
        """The current token record, if one has been issued."""
        return self._token

    def issue(self) -> str:
        """Issue a fresh token, replacing any outstanding one."""
        now = self._clock()
        value = f"ACK_{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}"
        self._token = HighRiskToken(token=value, issued_at=now, expires_at=now + self.ttl)
        logger.info("High-risk token issued, valid until %s", self._token.expires_at.isoformat())
        return value

    def consume(self, provided: str | None) -> TokenCheck:
        """Validate ``provided`` and consume the outstanding token on success."""
        token = self._token
        if token is None:
            return TokenCheck(
                valid=False,
                reason="No high-risk token set. Issue one before writing critical files.",
            )

        if token.used:
            return TokenCheck(
                valid=False,
                reason="Token already used (one-shot token). Issue a new one.",
            )

        if token.is_expired(self._clock()):
            self._token = None
            seconds = int(self.ttl.total_seconds())
            return TokenCheck(
                valid=False,
                reason=f"Token expired ({seconds} seconds timeout). Issue a new one.",
            )

        if provided is None:
            return TokenCheck(
                valid=False,
                reason="No token provided. Pass it as 'high_risk_token'.",
            )

        if not secrets.compare_digest(str(provided).encode(), token.token.encode()):
            return TokenCheck(
                valid=False,
                reason="Invalid token. Use the token that was issued.",
            )

        token.used = True
        logger.info("High-risk token consumed")
        return TokenCheck(valid=True)

    def revoke(self) -> None:
        """Drop the outstanding token."""
        self._token = None
