"""Unit tests for the httpx-based adapters, using httpx.MockTransport."""
import base64
import json
from collections.abc import Callable
from uuid import UUID, uuid4

import httpx
import pytest

from src.application.interfaces.ai_provider import InlineImage, ProviderRequest, ProviderRequestError
from src.application.interfaces.image_fetcher import ImageFetchError
from src.application.interfaces.session_provider import Session
from src.domain.entities.generation_payload import ImagePayload, TextPayload
from src.domain.entities.listing_draft import ListingDraft
from src.domain.entities.persisted_listing import PersistedListing
from src.domain.enums.provider_error_code import ProviderErrorCode
from src.domain.enums.session_failure_reason import SessionFailureReason
from src.domain.errors.generation_errors import (
    ImageUploadError,
    ListingPersistenceError,
    SessionInvalidatedError,
)
from src.domain.errors.provider_error import GenerationConfigError, ProviderError
from src.infrastructure.external_services.gemini_client import (
    NO_DETAILS,
    GeminiClient,
    build_request_body,
    extract_output_text,
    resolve_model_name,
)
from src.infrastructure.external_services.generation_api_client import GenerationApiClient
from src.infrastructure.external_services.image_fetcher import HttpImageFetcher
from src.infrastructure.external_services.listing_api_client import ListingApiClient
from src.infrastructure.external_services.supabase_auth import SupabaseSessionProvider
from src.infrastructure.external_services.supabase_storage import SupabaseObjectStorage
from tests.helpers import TEST_SUPABASE_URL, TEST_USER_ID, draft_dict

Handler = Callable[[httpx.Request], httpx.Response]


def _recording(handler: Handler) -> tuple[httpx.MockTransport, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def wrapped(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(wrapped), seen


def _candidates(text: str) -> dict:  # type: ignore[type-arg]
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


REQUEST = ProviderRequest(
    system_prompt="system",
    user_text="Input mode: text.\nProduct details: Sony a6400",
    response_schema={"type": "object"},
)


class TestGeminiHelpers:
    def test_model_prefix_stripped(self) -> None:
        assert resolve_model_name("models/gemini-2.0-flash") == "gemini-2.0-flash"

    def test_blank_model_uses_default(self) -> None:
        assert resolve_model_name("  ") == "gemini-2.5-flash-lite"

    def test_request_body_with_image_and_schema(self) -> None:
        request = ProviderRequest(
            system_prompt="system",
            user_text="user",
            image=InlineImage(data=b"abc", mime_type="image/png"),
            response_schema={"type": "object"},
        )
        body = build_request_body(request)
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "system"}
        assert parts[2]["inline_data"] == {"mime_type": "image/png", "data": base64.b64encode(b"abc").decode()}
        assert body["generationConfig"] == {
            "responseMimeType": "application/json",
            "responseJsonSchema": {"type": "object"},
        }

    def test_request_body_without_schema(self) -> None:
        body = build_request_body(ProviderRequest(system_prompt="s", user_text="u"))
        assert "responseJsonSchema" not in body["generationConfig"]
        assert len(body["contents"][0]["parts"]) == 2

    def test_output_text_from_first_candidate_with_text(self) -> None:
        response = {
            "candidates": [
                {"content": {"parts": [{"inlineData": {}}]}},
                {"content": {"parts": [{"text": '{"a":'}, {"text": " 1}"}]}},
            ]
        }
        assert extract_output_text(response) == '{"a": 1}'

    def test_output_text_missing(self) -> None:
        assert extract_output_text({"candidates": []}) is None
        assert extract_output_text("nope") is None


class TestGeminiClient:
    def test_missing_api_key(self) -> None:
        with pytest.raises(GenerationConfigError):
            GeminiClient(api_key="")

    @pytest.mark.asyncio
    async def test_posts_to_generate_content(self) -> None:
        transport, seen = _recording(lambda request: httpx.Response(200, json=_candidates('{"ok": true}')))
        client = GeminiClient(api_key="key", model="models/gemini-2.5-flash-lite", transport=transport)

        text = await client.generate_content(REQUEST)

        assert text == '{"ok": true}'
        assert seen[0].url.path.endswith("/models/gemini-2.5-flash-lite:generateContent")
        assert seen[0].headers["x-goog-api-key"] == "key"
        assert json.loads(seen[0].content)["generationConfig"]["responseJsonSchema"] == {"type": "object"}

    @pytest.mark.asyncio
    async def test_error_uses_nested_message(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, json={"error": {"message": "Unknown name responseJsonSchema"}})
        )
        with pytest.raises(ProviderRequestError) as exc_info:
            await GeminiClient(api_key="key", transport=transport).generate_content(REQUEST)
        assert exc_info.value.status == 400
        assert exc_info.value.details == "Unknown name responseJsonSchema"

    @pytest.mark.asyncio
    async def test_error_falls_back_to_raw_body(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="upstream unavailable"))
        with pytest.raises(ProviderRequestError) as exc_info:
            await GeminiClient(api_key="key", transport=transport).generate_content(REQUEST)
        assert exc_info.value.details == "upstream unavailable"

    @pytest.mark.asyncio
    async def test_error_without_body(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(429))
        with pytest.raises(ProviderRequestError) as exc_info:
            await GeminiClient(api_key="key", transport=transport).generate_content(REQUEST)
        assert exc_info.value.details == NO_DETAILS

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderRequestError) as exc_info:
            await GeminiClient(api_key="key", transport=httpx.MockTransport(fail)).generate_content(REQUEST)
        assert exc_info.value.status == 503


class TestHttpImageFetcher:
    @pytest.mark.asyncio
    async def test_returns_bytes_and_content_type(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"img", headers={"content-type": "image/webp"})
        )
        image = await HttpImageFetcher(transport=transport).fetch("https://cdn.test/a.webp")
        assert image.data == b"img"
        assert image.content_type == "image/webp"

    @pytest.mark.asyncio
    async def test_non_2xx_fails(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        with pytest.raises(ImageFetchError):
            await HttpImageFetcher(transport=transport).fetch("https://cdn.test/missing.jpg")


class TestGenerationApiClient:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        transport, seen = _recording(lambda request: httpx.Response(200, json={"draft": draft_dict()}))
        client = GenerationApiClient(base_url="https://api.test", anon_key="anon", transport=transport)

        draft = await client.generate(ImagePayload(image_url="https://cdn.test/a.jpg"), access_token="tok")

        assert draft.title == draft_dict()["title"]
        assert seen[0].url == "https://api.test/generate-listing"
        assert seen[0].headers["authorization"] == "Bearer tok"
        assert seen[0].headers["apikey"] == "anon"
        assert json.loads(seen[0].content) == {"mode": "image", "imageUrl": "https://cdn.test/a.jpg"}

    @pytest.mark.asyncio
    async def test_401_invalidates_session(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "Unauthorized"}))
        client = GenerationApiClient(base_url="https://api.test", transport=transport)
        with pytest.raises(SessionInvalidatedError) as exc_info:
            await client.generate(TextPayload(text="Sony a6400 body"), access_token="tok")
        assert exc_info.value.reason == SessionFailureReason.REJECTED_BY_SERVER

    @pytest.mark.asyncio
    async def test_error_body_mapped(self) -> None:
        body = {
            "error": "AI provider rate-limited the request.",
            "code": "AI_PROVIDER_RATE_LIMITED",
            "retryable": True,
        }
        transport = httpx.MockTransport(lambda request: httpx.Response(429, json=body))
        client = GenerationApiClient(base_url="https://api.test", transport=transport)
        with pytest.raises(ProviderError) as exc_info:
            await client.generate(TextPayload(text="Sony a6400 body"), access_token="tok")
        assert exc_info.value.code == ProviderErrorCode.RATE_LIMITED
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_malformed_success_body(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"draft": {"title": "x"}}))
        client = GenerationApiClient(base_url="https://api.test", transport=transport)
        with pytest.raises(ProviderError) as exc_info:
            await client.generate(TextPayload(text="Sony a6400 body"), access_token="tok")
        assert exc_info.value.code == ProviderErrorCode.INVALID_RESPONSE


class TestSupabaseSessionProvider:
    @pytest.mark.asyncio
    async def test_refresh(self) -> None:
        transport, seen = _recording(
            lambda request: httpx.Response(
                200, json={"access_token": "new", "refresh_token": "r2", "user": {"id": "u1"}}
            )
        )
        provider = SupabaseSessionProvider(supabase_url=TEST_SUPABASE_URL, anon_key="anon", transport=transport)
        provider.set_session(Session(access_token="old", user_id="u1", refresh_token="r1"))

        session = await provider.refresh_session()

        assert session == Session(access_token="new", user_id="u1", refresh_token="r2")
        assert seen[0].url.params["grant_type"] == "refresh_token"
        assert json.loads(seen[0].content) == {"refresh_token": "r1"}
        assert await provider.get_current_session() == session

    @pytest.mark.asyncio
    async def test_refresh_rejected(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
        provider = SupabaseSessionProvider(supabase_url=TEST_SUPABASE_URL, transport=transport)
        provider.set_session(Session(access_token="old", user_id="u1", refresh_token="r1"))
        assert await provider.refresh_session() is None

    @pytest.mark.asyncio
    async def test_sign_out_clears_session_even_if_server_fails(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        provider = SupabaseSessionProvider(supabase_url=TEST_SUPABASE_URL, transport=transport)
        provider.set_session(Session(access_token="tok", user_id="u1"))

        await provider.sign_out()

        assert await provider.get_current_session() is None


class TestSupabaseObjectStorage:
    def _storage(self, handler: Handler) -> tuple[SupabaseObjectStorage, list[httpx.Request]]:
        provider = SupabaseSessionProvider(supabase_url=TEST_SUPABASE_URL)
        provider.set_session(Session(access_token="tok", user_id="u1"))
        transport, seen = _recording(handler)
        storage = SupabaseObjectStorage(
            provider, supabase_url=TEST_SUPABASE_URL, anon_key="anon", bucket="listing-inputs", transport=transport
        )
        return storage, seen

    @pytest.mark.asyncio
    async def test_upload_returns_public_url(self) -> None:
        storage, seen = self._storage(lambda request: httpx.Response(200, json={"Key": "listing-inputs/u1/a.jpg"}))

        url = await storage.upload("u1/a.jpg", b"bytes", "image/jpeg")

        assert url == f"{TEST_SUPABASE_URL}/storage/v1/object/public/listing-inputs/u1/a.jpg"
        assert seen[0].url.path == "/storage/v1/object/listing-inputs/u1/a.jpg"
        assert seen[0].headers["content-type"] == "image/jpeg"
        assert seen[0].content == b"bytes"

    @pytest.mark.asyncio
    async def test_upload_failure(self) -> None:
        storage, _ = self._storage(lambda request: httpx.Response(400, json={"message": "Bucket not found"}))
        with pytest.raises(ImageUploadError, match="Bucket not found"):
            await storage.upload("u1/a.jpg", b"bytes", "image/jpeg")

    @pytest.mark.asyncio
    async def test_upload_unauthorized(self) -> None:
        storage, _ = self._storage(lambda request: httpx.Response(403))
        with pytest.raises(SessionInvalidatedError):
            await storage.upload("u1/a.jpg", b"bytes", "image/jpeg")


LISTING_ID = UUID("6f1c2a4e-8d3b-4c8e-9a57-1f0e2b3c4d5e")


def _listing_body(**overrides: object) -> dict:  # type: ignore[type-arg]
    body = {
        "id": str(LISTING_ID),
        "user_id": TEST_USER_ID,
        **draft_dict(),
        "currency": "USD",
        "image_url": "https://cdn.test/a.jpg",
        "created_at": "2026-10-01T12:00:00+00:00",
        "updated_at": "2026-10-01T12:00:00+00:00",
    }
    body.update(overrides)
    return body


class TestListingApiClient:
    def _client(self, handler: Handler) -> tuple[ListingApiClient, list[httpx.Request]]:
        provider = SupabaseSessionProvider(supabase_url=TEST_SUPABASE_URL)
        provider.set_session(Session(access_token="tok", user_id=TEST_USER_ID))
        transport, seen = _recording(handler)
        return ListingApiClient(provider, base_url="https://api.test/", transport=transport), seen

    @pytest.mark.asyncio
    async def test_insert_posts_draft(self) -> None:
        client, seen = self._client(lambda request: httpx.Response(201, json=_listing_body()))
        listing = PersistedListing.create_from_draft(
            user_id=TEST_USER_ID,
            draft=ListingDraft.model_validate(draft_dict()),
            image_url="https://cdn.test/a.jpg",
        )

        stored = await client.insert(listing)

        assert stored.id == LISTING_ID
        assert stored.created_at.year == 2026
        assert seen[0].method == "POST"
        assert seen[0].url == "https://api.test/listings"
        assert seen[0].headers["authorization"] == "Bearer tok"
        sent = json.loads(seen[0].content)
        assert sent["draft"]["title"] == draft_dict()["title"]
        assert sent["image_url"] == "https://cdn.test/a.jpg"
        assert sent["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_list_all_passes_paging(self) -> None:
        client, seen = self._client(
            lambda request: httpx.Response(200, json={"items": [_listing_body()], "count": 1})
        )

        listings = await client.list_all(user_id=TEST_USER_ID, limit=10, offset=20)

        assert [listing.id for listing in listings] == [LISTING_ID]
        assert seen[0].url.params["limit"] == "10"
        assert seen[0].url.params["offset"] == "20"

    @pytest.mark.asyncio
    async def test_get_missing_listing(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(404, json={"detail": "Listing not found."}))
        assert await client.get_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        client, seen = self._client(lambda request: httpx.Response(204))
        assert await client.delete(LISTING_ID) is True
        assert seen[0].method == "DELETE"
        assert seen[0].url.path == f"/listings/{LISTING_ID}"

    @pytest.mark.asyncio
    async def test_delete_missing(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(404))
        assert await client.delete(LISTING_ID) is False

    @pytest.mark.asyncio
    async def test_server_error_becomes_persistence_error(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(503, json={"detail": "Database unavailable."}))
        with pytest.raises(ListingPersistenceError, match="Database unavailable."):
            await client.list_all(user_id=TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_unauthorized_invalidates_session(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(401, json={"error": "Invalid or expired session."}))
        with pytest.raises(SessionInvalidatedError) as exc_info:
            await client.get_by_id(LISTING_ID)
        assert exc_info.value.reason == SessionFailureReason.REJECTED_BY_SERVER

    @pytest.mark.asyncio
    async def test_malformed_listing(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(200, json={"id": "not-a-uuid"}))
        with pytest.raises(ListingPersistenceError):
            await client.get_by_id(LISTING_ID)

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client, _ = self._client(fail)
        with pytest.raises(ListingPersistenceError, match="Failed to reach the listing service."):
            await client.list_all(user_id=TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_requires_session(self) -> None:
        client = ListingApiClient(
            SupabaseSessionProvider(supabase_url=TEST_SUPABASE_URL),
            base_url="https://api.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )
        with pytest.raises(SessionInvalidatedError):
            await client.delete(LISTING_ID)
