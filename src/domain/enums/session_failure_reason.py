from enum import Enum


class SessionFailureReason(str, Enum):
    """Why a session credential was rejected. Kept for logs only."""

    MALFORMED = "malformed"
    ISSUER_MISMATCH = "issuer_mismatch"
    AUDIENCE_MISMATCH = "audience_mismatch"
    MISSING_SUBJECT = "missing_subject"
    INVALID_ROLE = "invalid_role"
    EXPIRED = "expired"
    MISSING_SESSION = "missing_session"
    REJECTED_BY_SERVER = "rejected_by_server"
