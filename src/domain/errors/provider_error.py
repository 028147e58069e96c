from typing import Any

from src.domain.enums.provider_error_code import ProviderErrorCode

MAX_DETAILS_LENGTH = 500


class ProviderError(Exception):
    """A classified draft generation failure, mapped 1:1 onto the HTTP error body."""

    def __init__(
        self,
        code: ProviderErrorCode,
        http_status: int,
        message: str,
        *,
        retryable: bool = False,
        details: Any = None,
    ) -> None:
        self.code = code
        self.http_status = http_status
        self.message = message
        self.retryable = retryable
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"ProviderError(code={self.code.value}, http_status={self.http_status}, "
            f"retryable={self.retryable}, message={self.message!r})"
        )

    def to_response_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code.value}
        if self.details is not None:
            body["details"] = self.details
        if self.retryable:
            body["retryable"] = True
        return body

    @classmethod
    def from_response_body(cls, http_status: int, body: Any) -> "ProviderError":
        """Rebuild the error from a generation service failure response."""
        if not isinstance(body, dict):
            return cls(
                ProviderErrorCode.REQUEST_FAILED,
                http_status,
                "Listing generation failed.",
                details=str(body)[:MAX_DETAILS_LENGTH] if body else None,
            )

        try:
            code = ProviderErrorCode(body.get("code"))
        except ValueError:
            code = ProviderErrorCode.REQUEST_FAILED

        return cls(
            code,
            http_status,
            str(body.get("error") or "Listing generation failed."),
            retryable=bool(body.get("retryable", False)),
            details=body.get("details"),
        )


class GenerationConfigError(Exception):
    """Raised when the generation service is missing required configuration."""
