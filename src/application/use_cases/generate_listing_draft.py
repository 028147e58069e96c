from dataclasses import dataclass, replace
from typing import Any

import structlog
from pydantic import ValidationError

from src.application.interfaces.ai_provider import (
    AIProvider,
    InlineImage,
    ProviderRequest,
    ProviderRequestError,
)
from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.image_fetcher import ImageFetcher, ImageFetchError
from src.application.prompts.listing_prompt import (
    LISTING_DRAFT_JSON_SCHEMA,
    LISTING_PROMPT,
    build_user_text,
)
from src.application.services.provider_error_classifier import (
    ProviderErrorClassifier,
    SchemaRejectionDetector,
)
from src.application.services.structured_output import parse_structured_json_text
from src.config import settings
from src.domain.entities.generation_payload import (
    ImagePayload,
    TextPayload,
    parse_generation_payload,
)
from src.domain.entities.listing_draft import PRICE_RANGE_ERROR, ListingDraft
from src.domain.enums.generation_mode import GenerationMode
from src.domain.enums.provider_error_code import ProviderErrorCode
from src.domain.errors.provider_error import MAX_DETAILS_LENGTH, ProviderError
from src.domain.events.domain_events import DraftGeneratedEvent

logger = structlog.get_logger(__name__)

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


def resolve_image_mime_type(content_type: str | None) -> str:
    """Use the response Content-Type when it names an image, else assume JPEG."""
    if not content_type:
        return DEFAULT_IMAGE_MIME_TYPE
    mime_type = content_type.split(";")[0].strip().lower()
    return mime_type if mime_type.startswith("image/") else DEFAULT_IMAGE_MIME_TYPE


def _invalid_response(message: str, details: Any = None) -> ProviderError:
    return ProviderError(ProviderErrorCode.INVALID_RESPONSE, 502, message, details=details)


@dataclass
class GenerateListingDraftOutput:
    draft: ListingDraft
    mode: GenerationMode
    used_schema_fallback: bool


class GenerateListingDraft:
    """
    Use case: turn a generation payload into a validated listing draft.

    Stateless across calls. Every failure surfaces as a ProviderError whose
    code and HTTP status are what the service returns to its caller. The only
    automatic retry is the single schema-fallback call.
    """

    def __init__(
        self,
        ai_provider: AIProvider,
        image_fetcher: ImageFetcher,
        event_publisher: EventPublisher,
        classifier: ProviderErrorClassifier | None = None,
        schema_detector: SchemaRejectionDetector | None = None,
        max_image_bytes: int = settings.max_image_bytes,
    ) -> None:
        self._ai_provider = ai_provider
        self._image_fetcher = image_fetcher
        self._event_publisher = event_publisher
        self._classifier = classifier or ProviderErrorClassifier()
        self._schema_detector = schema_detector or SchemaRejectionDetector()
        self._max_image_bytes = max_image_bytes

    async def execute(self, raw_payload: Any) -> GenerateListingDraftOutput:
        payload = self._parse_payload(raw_payload)

        if isinstance(payload, ImagePayload):
            mode = GenerationMode.IMAGE
            image = await self._load_image(payload.image_url)
            user_text = build_user_text(None)
        else:
            mode = GenerationMode.TEXT
            image = None
            user_text = build_user_text(payload.text)

        request = ProviderRequest(
            system_prompt=LISTING_PROMPT,
            user_text=user_text,
            image=image,
            response_schema=LISTING_DRAFT_JSON_SCHEMA,
        )
        output_text, used_fallback = await self._request_with_schema_fallback(request)
        draft = self._parse_draft(output_text)

        await self._event_publisher.publish(
            DraftGeneratedEvent(
                mode=mode,
                title=draft.title,
                price_min=draft.price_min,
                price_max=draft.price_max,
                used_schema_fallback=used_fallback,
            )
        )
        logger.info(
            "draft_generated",
            mode=mode.value,
            used_schema_fallback=used_fallback,
            bullet_count=len(draft.bullet_points),
        )
        return GenerateListingDraftOutput(draft=draft, mode=mode, used_schema_fallback=used_fallback)

    def _parse_payload(self, raw_payload: Any) -> ImagePayload | TextPayload:
        try:
            return parse_generation_payload(raw_payload)
        except ValidationError as exc:
            raise ProviderError(
                ProviderErrorCode.REQUEST_FAILED,
                400,
                "Invalid request payload.",
                details=[issue["msg"] for issue in exc.errors()],
            ) from exc

    async def _load_image(self, image_url: str) -> InlineImage:
        try:
            fetched = await self._image_fetcher.fetch(image_url)
        except ImageFetchError as exc:
            raise ProviderError(
                ProviderErrorCode.REQUEST_FAILED,
                502,
                "Image download failed.",
                details=str(exc)[:MAX_DETAILS_LENGTH],
            ) from exc

        if not fetched.data:
            raise ProviderError(ProviderErrorCode.REQUEST_FAILED, 400, "Uploaded image is empty.")
        if len(fetched.data) > self._max_image_bytes:
            raise ProviderError(
                ProviderErrorCode.REQUEST_FAILED,
                400,
                "Uploaded image is too large for AI processing.",
            )

        return InlineImage(data=fetched.data, mime_type=resolve_image_mime_type(fetched.content_type))

    async def _request_with_schema_fallback(self, request: ProviderRequest) -> tuple[str | None, bool]:
        try:
            return await self._ai_provider.generate_content(request), False
        except ProviderRequestError as exc:
            if not self._schema_detector.is_schema_rejection(exc.status, exc.details):
                raise self._classify(exc) from exc
            logger.warning("provider_rejected_response_schema", status=exc.status, details=exc.details)

        try:
            return await self._ai_provider.generate_content(replace(request, response_schema=None)), True
        except ProviderRequestError as exc:
            raise self._classify(exc) from exc

    def _classify(self, exc: ProviderRequestError) -> ProviderError:
        error = self._classifier.classify(exc.status, exc.details)
        logger.error(
            "provider_request_failed",
            provider_status=exc.status,
            code=error.code.value,
            retryable=error.retryable,
        )
        return error

    def _parse_draft(self, output_text: str | None) -> ListingDraft:
        if not output_text:
            raise _invalid_response("AI provider returned no structured output.")

        parsed = parse_structured_json_text(output_text)
        if parsed is None:
            raise _invalid_response("AI provider output was not valid JSON.")

        try:
            return ListingDraft.model_validate(parsed)
        except ValidationError as exc:
            issues = exc.errors()
            if any(issue["type"] == PRICE_RANGE_ERROR for issue in issues):
                raise _invalid_response("AI produced an invalid price range.") from exc
            raise _invalid_response(
                "AI provider output did not match the listing schema.",
                details=[f"{'.'.join(map(str, issue['loc']))}: {issue['msg']}" for issue in issues],
            ) from exc
