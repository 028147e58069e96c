from enum import Enum


class GenerationState(str, Enum):
    """States of a single generation attempt as seen by the client."""

    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    UPLOADING = "UPLOADING"
    GENERATING = "GENERATING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_settled(self) -> bool:
        """Settled states accept a fresh submit or a retry."""
        return self in (GenerationState.IDLE, GenerationState.SUCCEEDED, GenerationState.FAILED)
