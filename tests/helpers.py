"""Token and draft builders shared by the test suites."""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

TEST_SUPABASE_URL = "https://example-project.supabase.co"
TEST_ISSUER = f"{TEST_SUPABASE_URL}/auth/v1"
TEST_PROJECT_REF = "example-project"
TEST_JWT_SECRET = "test-jwt-secret"
TEST_USER_ID = "3f6d7a1e-8a55-4c07-9a9b-1c2f2ea1d001"


def make_token(
    *,
    secret: str = TEST_JWT_SECRET,
    expires_in: timedelta = timedelta(hours=1),
    **overrides: Any,
) -> str:
    claims: dict[str, Any] = {
        "iss": TEST_ISSUER,
        "aud": "authenticated",
        "ref": TEST_PROJECT_REF,
        "sub": TEST_USER_ID,
        "role": "authenticated",
        "exp": int((datetime.now(timezone.utc) + expires_in).timestamp()),
    }
    claims.update(overrides)
    # None drops the claim entirely
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret, algorithm="HS256")


def draft_dict(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "title": "Sony Alpha a6400 Mirrorless Camera Body",
        "description": "Lightly used Sony a6400 body with battery and charger, no scratches on the sensor.",
        "bullet_points": ["24.2MP APS-C sensor", "4K video recording", "Includes battery and charger"],
        "price_min": 550,
        "price_max": 680,
    }
    data.update(overrides)
    return data


