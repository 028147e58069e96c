"""
Classification of failed AI provider calls.

Provider error wording is not a stable contract, so signal matching is an
ordered list of (pattern, code) rules that can be swapped or extended
without touching the generation flow. First match wins.
"""
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from src.config import settings
from src.domain.enums.provider_error_code import ProviderErrorCode
from src.domain.errors.provider_error import MAX_DETAILS_LENGTH, ProviderError

RETRYABLE_STATUS = 429
REQUEST_FAILED_STATUS = 502


@dataclass(frozen=True)
class ErrorSignalRule:
    pattern: re.Pattern[str]
    code: ProviderErrorCode

    @classmethod
    def compile(cls, pattern: str, code: ProviderErrorCode) -> "ErrorSignalRule":
        return cls(pattern=re.compile(pattern, re.IGNORECASE), code=code)


DEFAULT_RULES: tuple[ErrorSignalRule, ...] = (
    ErrorSignalRule.compile(
        r"rate limit|too many requests|resource_exhausted", ProviderErrorCode.RATE_LIMITED
    ),
    ErrorSignalRule.compile(
        r"quota exceeded|free_tier_requests|billing details|limit:\s*0",
        ProviderErrorCode.QUOTA_EXCEEDED,
    ),
)

_MESSAGES: dict[ProviderErrorCode, str] = {
    ProviderErrorCode.QUOTA_EXCEEDED: "AI provider quota exceeded. Please try again later.",
    ProviderErrorCode.RATE_LIMITED: "AI provider rate-limited the request. Please retry in a moment.",
    ProviderErrorCode.REQUEST_FAILED: "AI provider request failed.",
}


class ProviderErrorClassifier:
    def __init__(self, rules: Sequence[ErrorSignalRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    def detect_code(self, status: int, details: str) -> ProviderErrorCode:
        for rule in self._rules:
            if rule.pattern.search(details):
                return rule.code
        # A bare 429 without recognisable wording is treated as quota exhaustion
        if status == RETRYABLE_STATUS:
            return ProviderErrorCode.QUOTA_EXCEEDED
        return ProviderErrorCode.REQUEST_FAILED

    def classify(self, status: int, details: str) -> ProviderError:
        code = self.detect_code(status, details)
        truncated = details[:MAX_DETAILS_LENGTH]

        if code in (ProviderErrorCode.QUOTA_EXCEEDED, ProviderErrorCode.RATE_LIMITED):
            return ProviderError(
                code, RETRYABLE_STATUS, _MESSAGES[code], retryable=True, details=truncated
            )

        return ProviderError(
            ProviderErrorCode.REQUEST_FAILED,
            REQUEST_FAILED_STATUS,
            _MESSAGES[ProviderErrorCode.REQUEST_FAILED],
            details=truncated,
        )


class SchemaRejectionDetector:
    """Recognises a 400 caused by the provider refusing the structured-output schema."""

    def __init__(self, patterns: Iterable[str] = settings.schema_fallback_patterns) -> None:
        self._pattern = re.compile("|".join(f"(?:{p})" for p in patterns), re.IGNORECASE)

    def is_schema_rejection(self, status: int, details: str) -> bool:
        if status != 400:
            return False
        return bool(self._pattern.search(details))
