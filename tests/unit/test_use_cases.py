"""Unit tests for application use cases, with all dependencies mocked."""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.interfaces.ai_provider import ProviderRequestError
from src.application.interfaces.image_fetcher import FetchedImage, ImageFetchError
from src.application.prompts.listing_prompt import IMAGE_MODE_INSTRUCTION
from src.application.use_cases.generate_listing_draft import (
    GenerateListingDraft,
    resolve_image_mime_type,
)
from src.application.use_cases.save_listing_draft import SaveListingDraft, SaveListingDraftInput
from src.domain.entities.listing_draft import ListingDraft
from src.domain.enums.generation_mode import GenerationMode
from src.domain.enums.provider_error_code import ProviderErrorCode
from src.domain.errors.generation_errors import ListingPersistenceError
from src.domain.errors.provider_error import ProviderError
from src.domain.events.domain_events import DraftGeneratedEvent, ListingSavedEvent
from tests.helpers import TEST_USER_ID, draft_dict

IMAGE_URL = "https://example-project.supabase.co/storage/v1/object/public/listing-inputs/u/1.jpg"
TEXT_PAYLOAD = {"mode": "text", "text": "Sony a6400 body, shutter count 3k, with charger"}


def _make_provider(*outputs: object) -> MagicMock:
    """Each output is returned (or raised) by successive generate_content calls."""
    provider = MagicMock()
    provider.generate_content = AsyncMock(side_effect=list(outputs))
    return provider


def _make_fetcher(image: FetchedImage | Exception | None = None) -> MagicMock:
    fetcher = MagicMock()
    if isinstance(image, Exception):
        fetcher.fetch = AsyncMock(side_effect=image)
    else:
        fetcher.fetch = AsyncMock(return_value=image or FetchedImage(b"\xff\xd8jpeg", "image/png"))
    return fetcher


def _make_publisher() -> MagicMock:
    pub = MagicMock()
    pub.publish = AsyncMock()
    pub.publish_many = AsyncMock()
    return pub


def _use_case(provider: MagicMock, fetcher: MagicMock | None = None, **kwargs: object) -> GenerateListingDraft:
    return GenerateListingDraft(provider, fetcher or _make_fetcher(), _make_publisher(), **kwargs)  # type: ignore[arg-type]


class TestResolveImageMimeType:
    def test_parameters_stripped_and_lowercased(self) -> None:
        assert resolve_image_mime_type("Image/PNG; charset=binary") == "image/png"

    def test_missing_defaults_to_jpeg(self) -> None:
        assert resolve_image_mime_type(None) == "image/jpeg"

    def test_non_image_defaults_to_jpeg(self) -> None:
        assert resolve_image_mime_type("application/octet-stream") == "image/jpeg"


class TestGenerateListingDraft:
    @pytest.mark.asyncio
    async def test_text_mode_returns_draft(self) -> None:
        provider = _make_provider(json.dumps(draft_dict()))
        publisher = _make_publisher()
        use_case = GenerateListingDraft(provider, _make_fetcher(), publisher)

        result = await use_case.execute(TEXT_PAYLOAD)

        assert result.mode == GenerationMode.TEXT
        assert result.draft.title == draft_dict()["title"]
        assert result.used_schema_fallback is False
        request = provider.generate_content.await_args.args[0]
        assert request.image is None
        assert request.response_schema is not None
        assert request.user_text.startswith("Input mode: text.\nProduct details: Sony a6400")
        event = publisher.publish.await_args.args[0]
        assert isinstance(event, DraftGeneratedEvent)
        assert event.mode == GenerationMode.TEXT

    @pytest.mark.asyncio
    async def test_image_mode_inlines_downloaded_image(self) -> None:
        provider = _make_provider(json.dumps(draft_dict()))
        fetcher = _make_fetcher(FetchedImage(b"png-bytes", "image/png"))

        result = await _use_case(provider, fetcher).execute({"mode": "image", "imageUrl": IMAGE_URL})

        assert result.mode == GenerationMode.IMAGE
        fetcher.fetch.assert_awaited_once_with(IMAGE_URL)
        request = provider.generate_content.await_args.args[0]
        assert request.image.data == b"png-bytes"
        assert request.image.mime_type == "image/png"
        assert request.user_text == IMAGE_MODE_INSTRUCTION

    @pytest.mark.asyncio
    async def test_invalid_payload_is_400(self) -> None:
        provider = _make_provider()
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider).execute({"mode": "text", "text": ""})
        assert exc_info.value.http_status == 400
        assert exc_info.value.message == "Invalid request payload."
        assert isinstance(exc_info.value.details, list)
        provider.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_image_fails_before_provider_call(self) -> None:
        provider = _make_provider()
        fetcher = _make_fetcher(FetchedImage(b"", "image/jpeg"))
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider, fetcher).execute({"mode": "image", "imageUrl": IMAGE_URL})
        assert exc_info.value.http_status == 400
        assert exc_info.value.retryable is False
        provider.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_image_fails_before_provider_call(self) -> None:
        provider = _make_provider()
        fetcher = _make_fetcher(FetchedImage(b"x" * 11, "image/jpeg"))
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider, fetcher, max_image_bytes=10).execute(
                {"mode": "image", "imageUrl": IMAGE_URL}
            )
        assert exc_info.value.code == ProviderErrorCode.REQUEST_FAILED
        assert exc_info.value.http_status == 400
        provider.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_image_download_failure(self) -> None:
        provider = _make_provider()
        fetcher = _make_fetcher(ImageFetchError("404 Not Found"))
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider, fetcher).execute({"mode": "image", "imageUrl": IMAGE_URL})
        assert exc_info.value.code == ProviderErrorCode.REQUEST_FAILED
        provider.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_schema_rejection_retries_once_without_schema(self) -> None:
        provider = _make_provider(
            ProviderRequestError(400, 'Invalid JSON payload received. Unknown name "responseJsonSchema"'),
            json.dumps(draft_dict()),
        )

        result = await _use_case(provider).execute(TEXT_PAYLOAD)

        assert result.used_schema_fallback is True
        assert provider.generate_content.await_count == 2
        first, second = (call.args[0] for call in provider.generate_content.await_args_list)
        assert first.response_schema is not None
        assert second.response_schema is None
        assert second.user_text == first.user_text

    @pytest.mark.asyncio
    async def test_schema_fallback_failure_is_classified(self) -> None:
        provider = _make_provider(
            ProviderRequestError(400, "response_schema is not supported"),
            ProviderRequestError(429, "Resource has been exhausted: RESOURCE_EXHAUSTED"),
        )
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider).execute(TEXT_PAYLOAD)
        assert exc_info.value.code == ProviderErrorCode.RATE_LIMITED
        assert provider.generate_content.await_count == 2

    @pytest.mark.asyncio
    async def test_other_failures_are_not_retried(self) -> None:
        provider = _make_provider(ProviderRequestError(500, "Internal error"))
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider).execute(TEXT_PAYLOAD)
        assert exc_info.value.code == ProviderErrorCode.REQUEST_FAILED
        assert exc_info.value.http_status == 502
        assert provider.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_rate_limited_is_retryable(self) -> None:
        provider = _make_provider(ProviderRequestError(429, "Too Many Requests: rate limit"))
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(provider).execute(TEXT_PAYLOAD)
        assert exc_info.value.code == ProviderErrorCode.RATE_LIMITED
        assert exc_info.value.http_status == 429
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_no_output_text(self) -> None:
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(_make_provider(None)).execute(TEXT_PAYLOAD)
        assert exc_info.value.code == ProviderErrorCode.INVALID_RESPONSE
        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_fenced_output_accepted(self) -> None:
        output = f"```json\n{json.dumps(draft_dict())}\n```"
        result = await _use_case(_make_provider(output)).execute(TEXT_PAYLOAD)
        assert isinstance(result.draft, ListingDraft)

    @pytest.mark.asyncio
    async def test_unparseable_output(self) -> None:
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(_make_provider("Sure! Here is a listing.")).execute(TEXT_PAYLOAD)
        assert exc_info.value.code == ProviderErrorCode.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_schema_mismatch(self) -> None:
        output = json.dumps(draft_dict(bullet_points=["only one"]))
        with pytest.raises(ProviderError) as exc_info:
            await _use_case(_make_provider(output)).execute(TEXT_PAYLOAD)
        assert exc_info.value.code == ProviderErrorCode.INVALID_RESPONSE
        assert exc_info.value.details

    @pytest.mark.asyncio
    async def test_inverted_price_range_rejected(self) -> None:
        output = json.dumps(draft_dict(price_min=100, price_max=50))
        publisher = _make_publisher()
        use_case = GenerateListingDraft(_make_provider(output), _make_fetcher(), publisher)

        with pytest.raises(ProviderError) as exc_info:
            await use_case.execute(TEXT_PAYLOAD)

        assert exc_info.value.code == ProviderErrorCode.INVALID_RESPONSE
        assert exc_info.value.http_status == 502
        assert exc_info.value.message == "AI produced an invalid price range."
        publisher.publish.assert_not_awaited()


class TestSaveListingDraft:
    @pytest.mark.asyncio
    async def test_inserts_and_publishes(self, draft: ListingDraft) -> None:
        repo = MagicMock()
        repo.insert = AsyncMock(side_effect=lambda listing: listing)
        publisher = _make_publisher()

        listing = await SaveListingDraft(repo, publisher).execute(
            SaveListingDraftInput(user_id=TEST_USER_ID, draft=draft, image_url="https://cdn.test/a.jpg")
        )

        assert listing.user_id == TEST_USER_ID
        assert listing.title == draft.title
        assert listing.image_url == "https://cdn.test/a.jpg"
        repo.insert.assert_awaited_once()
        events = publisher.publish_many.await_args.args[0]
        assert len(events) == 1
        assert isinstance(events[0], ListingSavedEvent)
        assert events[0].has_image is True

    @pytest.mark.asyncio
    async def test_repository_failure_propagates(self, draft: ListingDraft) -> None:
        repo = MagicMock()
        repo.insert = AsyncMock(side_effect=ListingPersistenceError("Failed to save listing."))
        publisher = _make_publisher()

        with pytest.raises(ListingPersistenceError):
            await SaveListingDraft(repo, publisher).execute(
                SaveListingDraftInput(user_id=TEST_USER_ID, draft=draft)
            )
        publisher.publish_many.assert_not_awaited()
