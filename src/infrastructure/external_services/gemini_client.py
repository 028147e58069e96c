"""HTTP client for the Gemini generateContent API."""
import base64
from typing import Any

import httpx
import structlog

from src.application.interfaces.ai_provider import AIProvider, ProviderRequest, ProviderRequestError
from src.config import settings
from src.domain.errors.provider_error import MAX_DETAILS_LENGTH, GenerationConfigError

logger = structlog.get_logger(__name__)

NO_DETAILS = "No error details were provided."


def resolve_model_name(raw_model: str | None, default: str = "gemini-2.5-flash-lite") -> str:
    if not raw_model or not raw_model.strip():
        return default
    model = raw_model.strip()
    return model.removeprefix("models/")


def build_request_body(request: ProviderRequest) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [
        {"text": request.system_prompt},
        {"text": request.user_text},
    ]
    if request.image is not None:
        parts.append(
            {
                "inline_data": {
                    "mime_type": request.image.mime_type,
                    "data": base64.b64encode(request.image.data).decode("ascii"),
                }
            }
        )

    generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
    if request.response_schema is not None:
        generation_config["responseJsonSchema"] = request.response_schema

    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": generation_config,
    }


def extract_output_text(response_json: Any) -> str | None:
    """Concatenated text of the first candidate that has any."""
    if not isinstance(response_json, dict):
        return None
    candidates = response_json.get("candidates")
    if not isinstance(candidates, list):
        return None

    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            continue
        text = "".join(
            part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)
        ).strip()
        if text:
            return text
    return None


def extract_error_details(response: httpx.Response) -> str:
    """Nested error.message when the body is the usual JSON envelope, else the raw body."""
    raw = response.text
    if not raw:
        return NO_DETAILS
    try:
        body = response.json()
    except ValueError:
        return raw[:MAX_DETAILS_LENGTH]

    error = body.get("error") if isinstance(body, dict) else None
    message = error.get("message") if isinstance(error, dict) else None
    if isinstance(message, str) and message:
        return message[:MAX_DETAILS_LENGTH]
    return raw[:MAX_DETAILS_LENGTH] if raw.strip() else NO_DETAILS


class GeminiClient(AIProvider):
    """Thin HTTP wrapper around generateContent."""

    def __init__(
        self,
        api_key: str = settings.gemini_api_key,
        model: str = settings.gemini_model,
        base_url: str = settings.gemini_base_url,
        timeout: float = settings.gemini_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise GenerationConfigError("GEMINI_API_KEY is not configured.")
        self._model = resolve_model_name(model)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def generate_content(self, request: ProviderRequest) -> str | None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.endpoint,
                    json=build_request_body(request),
                    headers=self._headers,
                )
            except httpx.RequestError as exc:
                logger.error("gemini_connection_failed", error=str(exc))
                raise ProviderRequestError(503, f"Failed to reach Gemini: {exc}") from exc

        if response.is_error:
            details = extract_error_details(response)
            logger.error(
                "gemini_request_failed",
                status_code=response.status_code,
                with_schema=request.response_schema is not None,
                details=details,
            )
            raise ProviderRequestError(response.status_code, details)

        try:
            data = response.json()
        except ValueError:
            logger.error("gemini_response_not_json", status_code=response.status_code)
            return None

        logger.info(
            "gemini_request_completed",
            model=self._model,
            with_schema=request.response_schema is not None,
        )
        return extract_output_text(data)
