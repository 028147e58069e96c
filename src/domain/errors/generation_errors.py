from src.domain.enums.session_failure_reason import SessionFailureReason


class InputValidationError(Exception):
    """User input rejected locally, before any network call."""

    def __init__(self, message: str, field: str) -> None:
        self.field = field
        super().__init__(message)


class ImageUploadError(Exception):
    """The input image could not be stored, so no generation was attempted."""


class SessionInvalidatedError(Exception):
    """The caller's session failed a claim check and must re-authenticate."""

    def __init__(self, reason: SessionFailureReason) -> None:
        self.reason = reason
        super().__init__(f"Session invalidated ({reason.value}).")


class ListingPersistenceError(Exception):
    """Saving a listing to the relational store failed."""
