"""
Server-side bearer credential verification.

The signature is checked against the Supabase project's JWT secret, then the
same claim checks the client runs are applied so both sides agree on what a
usable session is.
"""
from datetime import datetime

import structlog
from jose import jwt
from jose.exceptions import JWSError, JWTError

from src.application.services.session_validator import SessionValidator
from src.config import settings
from src.domain.entities.session_claims import SessionClaims
from src.domain.enums.session_failure_reason import SessionFailureReason
from src.domain.errors.generation_errors import SessionInvalidatedError
from src.domain.errors.provider_error import GenerationConfigError

logger = structlog.get_logger(__name__)

SUPABASE_JWT_ALGORITHMS = ["HS256"]


class SupabaseTokenVerifier:
    def __init__(
        self,
        secret: str = settings.supabase_jwt_secret,
        validator: SessionValidator | None = None,
    ) -> None:
        self._secret = secret
        self._validator = validator or SessionValidator()

    def verify(self, token: str | None, *, now: datetime | None = None) -> SessionClaims:
        if not self._secret:
            raise GenerationConfigError("SUPABASE_JWT_SECRET is not configured.")
        if not token:
            raise SessionInvalidatedError(SessionFailureReason.MISSING_SESSION)

        try:
            jwt.decode(
                token,
                self._secret,
                algorithms=SUPABASE_JWT_ALGORITHMS,
                # Audience and expiry are judged by the claim checks below
                options={"verify_aud": False, "verify_exp": False},
            )
        except (JWTError, JWSError, ValueError) as exc:
            logger.warning("token_signature_rejected", error=str(exc))
            raise SessionInvalidatedError(SessionFailureReason.MALFORMED) from exc

        result = self._validator.validate(token, now=now)
        if not result.valid or result.claims is None:
            raise SessionInvalidatedError(result.reason or SessionFailureReason.MALFORMED)

        logger.debug("token_verified", subject=result.claims.subject)
        return result.claims
