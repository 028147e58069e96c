from enum import Enum


class ProviderErrorCode(str, Enum):
    """Classification of a failed draft generation, as sent on the wire."""

    QUOTA_EXCEEDED = "AI_PROVIDER_QUOTA_EXCEEDED"
    RATE_LIMITED = "AI_PROVIDER_RATE_LIMITED"
    REQUEST_FAILED = "AI_PROVIDER_REQUEST_FAILED"
    INVALID_RESPONSE = "AI_PROVIDER_INVALID_RESPONSE"
