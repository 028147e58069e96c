"""
Client-side session integrity check.

Runs before every privileged generation call so that a stale token, or one
issued for another project, never reaches the generation backend. This is
not an authorization decision: the backend verifies the credential itself.
"""
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from jose import jwt
from jose.exceptions import JWSError, JWTError

from src.config import settings
from src.domain.entities.session_claims import SessionClaims
from src.domain.enums.session_failure_reason import SessionFailureReason

logger = structlog.get_logger(__name__)

AUTHENTICATED_ROLE = "authenticated"


@dataclass(frozen=True)
class SessionValidationResult:
    valid: bool
    claims: SessionClaims | None = None
    reason: SessionFailureReason | None = None


class SessionValidator:
    """Checks issuer, scope, subject, role and expiry of a bearer credential, in that order."""

    def __init__(
        self,
        expected_issuer: str = settings.session_issuer,
        expected_audience: str = settings.supabase_project_ref,
    ) -> None:
        self._expected_issuer = expected_issuer
        self._expected_audience = expected_audience

    def validate(self, credential: str | None, *, now: datetime | None = None) -> SessionValidationResult:
        claims = self._decode(credential)
        if claims is None:
            return self._fail(SessionFailureReason.MALFORMED)

        if claims.issuer != self._expected_issuer:
            return self._fail(SessionFailureReason.ISSUER_MISMATCH, claims)

        if claims.scope != self._expected_audience:
            return self._fail(SessionFailureReason.AUDIENCE_MISMATCH, claims)

        if not claims.subject:
            return self._fail(SessionFailureReason.MISSING_SUBJECT, claims)

        if claims.role != AUTHENTICATED_ROLE:
            return self._fail(SessionFailureReason.INVALID_ROLE, claims)

        current = now or datetime.now(timezone.utc)
        if claims.expiry is None or claims.expiry <= current:
            return self._fail(SessionFailureReason.EXPIRED, claims)

        return SessionValidationResult(valid=True, claims=claims)

    def _decode(self, credential: str | None) -> SessionClaims | None:
        if not credential:
            return None
        try:
            raw_claims = jwt.get_unverified_claims(credential)
        except (JWTError, JWSError, ValueError):
            return None
        if not isinstance(raw_claims, dict):
            return None
        return SessionClaims.from_mapping(raw_claims)

    def _fail(
        self, reason: SessionFailureReason, claims: SessionClaims | None = None
    ) -> SessionValidationResult:
        logger.warning(
            "session_validation_failed",
            reason=reason.value,
            issuer=claims.issuer if claims else None,
            subject=claims.subject if claims else None,
        )
        return SessionValidationResult(valid=False, claims=claims, reason=reason)
