from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class SessionClaims:
    """Claims read from a bearer credential. Recomputed for every privileged call."""

    issuer: str | None
    audience: str | None
    subject: str | None
    role: str | None
    expiry: datetime | None
    project_ref: str | None = None

    @classmethod
    def from_mapping(cls, claims: dict[str, Any]) -> "SessionClaims":
        audience = claims.get("aud")
        if isinstance(audience, list):
            audience = audience[0] if audience else None

        raw_exp = claims.get("exp")
        expiry = None
        if isinstance(raw_exp, (int, float)) and not isinstance(raw_exp, bool):
            expiry = datetime.fromtimestamp(raw_exp, tz=timezone.utc)

        return cls(
            issuer=claims.get("iss"),
            audience=audience,
            subject=claims.get("sub") or None,
            role=claims.get("role"),
            expiry=expiry,
            project_ref=claims.get("ref"),
        )

    @property
    def scope(self) -> str | None:
        """Project identifier the credential was issued for."""
        return self.project_ref or self.audience
