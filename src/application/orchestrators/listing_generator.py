"""
Client-side controller for listing draft generation.

Owns the per-user generation state: validates input, checks the session,
uploads images, calls the generation service, and applies results to the
draft. Only a successful generation replaces the draft, so a failed or
stale attempt can never clobber a working listing or its image reference.
"""
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import structlog
from pydantic import ValidationError

from src.application.interfaces.generation_client import GenerationClient
from src.application.interfaces.navigator import Navigator
from src.application.interfaces.object_storage import ObjectStorage
from src.application.interfaces.session_provider import Session, SessionProvider
from src.application.orchestrators.draft_storage import DraftStorage
from src.application.orchestrators.formatting import build_formatted_listing
from src.application.orchestrators.input_validation import (
    ImageFile,
    validate_image_file,
    validate_text_input,
)
from src.application.orchestrators.progress_controller import ProgressController
from src.application.services.session_validator import SessionValidator
from src.application.use_cases.save_listing_draft import SaveListingDraft, SaveListingDraftInput
from src.domain.entities.generation_payload import ImagePayload, TextPayload
from src.domain.entities.listing_draft import ListingDraft, StoredDraft
from src.domain.entities.persisted_listing import PersistedListing
from src.domain.enums.generation_mode import GenerationMode
from src.domain.enums.generation_state import GenerationState
from src.domain.enums.session_failure_reason import SessionFailureReason
from src.domain.errors.generation_errors import (
    ImageUploadError,
    InputValidationError,
    ListingPersistenceError,
    SessionInvalidatedError,
)
from src.domain.errors.provider_error import ProviderError
from src.domain.state_machine.generation_state_machine import GenerationStateMachine

logger = structlog.get_logger(__name__)

SESSION_EXPIRED_NOTICE = "Session expired. Please sign in again. Unsaved draft data was preserved."

_EXTENSION_CHARS = re.compile(r"[^a-z0-9]")


def build_object_path(user_id: str, filename: str) -> str:
    """Storage path for an input image, namespaced by the owning user."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "jpg"
    safe_extension = _EXTENSION_CHARS.sub("", extension) or "jpg"
    return f"{user_id}/{uuid4()}.{safe_extension}"


@dataclass
class OrchestratorState:
    mode: GenerationMode = GenerationMode.IMAGE
    raw_input: str | ImageFile | None = None
    draft: ListingDraft | None = None
    # Image the current draft was generated from; None for text drafts
    draft_image_url: str | None = None
    last_payload: ImagePayload | TextPayload | None = None
    in_flight: bool = False
    status: GenerationState = GenerationState.IDLE
    submit_error: str | None = None
    save_error: str | None = None
    last_error: Exception | None = None
    user_id: str | None = None


class ListingGeneratorOrchestrator:
    def __init__(
        self,
        *,
        session_provider: SessionProvider,
        session_validator: SessionValidator,
        generation_client: GenerationClient,
        object_storage: ObjectStorage,
        draft_storage: DraftStorage,
        save_listing: SaveListingDraft,
        navigator: Navigator,
        progress: ProgressController | None = None,
        state_machine: GenerationStateMachine | None = None,
    ) -> None:
        self._session_provider = session_provider
        self._session_validator = session_validator
        self._generation_client = generation_client
        self._object_storage = object_storage
        self._draft_storage = draft_storage
        self._save_listing = save_listing
        self._navigator = navigator
        self._progress = progress or ProgressController()
        self._state_machine = state_machine or GenerationStateMachine()
        self._state = OrchestratorState()

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def progress(self) -> ProgressController:
        return self._progress

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def hydrate(self, user_id: str) -> None:
        """Load the user's unsaved draft from local storage."""
        self._state.user_id = user_id
        stored = self._draft_storage.load(user_id)
        self._state.draft = stored.draft if stored else None
        self._state.draft_image_url = stored.image_url if stored else None

    def switch_user(self, user_id: str | None) -> None:
        """Drop everything held for the previous user and load the next user's draft."""
        if user_id == self._state.user_id:
            return
        if self._state.in_flight:
            # The running attempt finishes against the old state and its result is dropped
            self._progress.stop()
        self._state = OrchestratorState()
        if user_id is not None:
            self.hydrate(user_id)

    def change_mode(self, mode: GenerationMode) -> None:
        self._state.mode = mode
        self._state.submit_error = None

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def submit(self, mode: GenerationMode, raw_input: str | ImageFile | None) -> ListingDraft | None:
        """
        Validate input and run one generation attempt.

        Returns the new draft on success and None otherwise; failures are
        recorded on the state. Ignored while another attempt is running.
        Unexpected errors settle the attempt as FAILED and are re-raised.
        """
        state = self._state
        if state.in_flight or not state.status.is_settled:
            logger.info("generation_ignored_in_flight", mode=mode.value)
            return None

        state.mode = mode
        state.raw_input = raw_input
        state.submit_error = None
        state.last_error = None
        self._transition(state, GenerationState.VALIDATING)

        try:
            self._validate_input(mode, raw_input)
        except InputValidationError as exc:
            state.submit_error = str(exc)
            state.last_error = exc
            self._transition(state, GenerationState.IDLE)
            return None

        self._begin_flight(state)
        try:
            session = await self._require_session()
            if isinstance(raw_input, ImageFile):
                payload: ImagePayload | TextPayload = await self._upload_image(state, session, raw_input)
            else:
                payload = TextPayload(text=str(raw_input).strip())
            return await self._generate(state, payload, session)
        except SessionInvalidatedError as exc:
            await self._handle_session_invalidated(state, exc)
            return None
        except ImageUploadError as exc:
            self._fail(state, exc, str(exc))
            return None
        except Exception as exc:
            self._fail(state, exc, "Listing generation failed.")
            raise
        finally:
            self._end_flight(state)

    async def retry(self) -> ListingDraft | None:
        """Resubmit the last payload without re-entering or re-uploading input."""
        state = self._state
        payload = state.last_payload
        if state.in_flight or not state.status.is_settled or payload is None:
            return None

        state.submit_error = None
        state.last_error = None
        self._begin_flight(state)
        try:
            self._transition(state, GenerationState.GENERATING)
            session = await self._require_session()
            return await self._generate(state, payload, session)
        except SessionInvalidatedError as exc:
            await self._handle_session_invalidated(state, exc)
            return None
        except Exception as exc:
            self._fail(state, exc, "Listing generation failed.")
            raise
        finally:
            self._end_flight(state)

    async def _generate(
        self, state: OrchestratorState, payload: ImagePayload | TextPayload, session: Session
    ) -> ListingDraft | None:
        if state is not self._state:
            return self._drop_stale(state)

        state.last_payload = payload
        if state.status != GenerationState.GENERATING:
            self._transition(state, GenerationState.GENERATING)

        try:
            draft = await self._generation_client.generate(payload, access_token=session.access_token)
        except ProviderError as exc:
            self._fail(state, exc, exc.message)
            return None

        if state is not self._state:
            return self._drop_stale(state)

        state.draft = draft
        state.draft_image_url = payload.image_url if isinstance(payload, ImagePayload) else None
        self._persist_draft(state)
        self._transition(state, GenerationState.SUCCEEDED)
        logger.info("draft_applied", mode=payload.mode, user_id=state.user_id)
        return draft

    async def _upload_image(self, state: OrchestratorState, session: Session, image: ImageFile) -> ImagePayload:
        self._transition(state, GenerationState.UPLOADING)
        path = build_object_path(session.user_id, image.filename)
        image_url = await self._object_storage.upload(path, image.data, image.content_type)
        logger.info("input_image_uploaded", path=path, size=image.size)
        return ImagePayload(image_url=image_url)

    def _validate_input(self, mode: GenerationMode, raw_input: str | ImageFile | None) -> None:
        if mode == GenerationMode.IMAGE:
            image = raw_input if isinstance(raw_input, ImageFile) else None
            error = validate_image_file(image)
            if error:
                raise InputValidationError(error, field="image")
            return

        if not isinstance(raw_input, str):
            raise InputValidationError("Enter product details to continue.", field="text")
        error = validate_text_input(raw_input)
        if error:
            raise InputValidationError(error, field="text")

    # -------------------------------------------------------------------------
    # Draft mutation
    # -------------------------------------------------------------------------

    def update_draft(self, changes: ListingDraft | Mapping[str, Any]) -> ListingDraft:
        """Apply manual edits. Invalid edits raise InputValidationError and leave the draft as it was."""
        if isinstance(changes, ListingDraft):
            candidate: dict[str, Any] = changes.to_dict()
        else:
            base = self._state.draft.to_dict() if self._state.draft else {}
            candidate = {**base, **changes}

        try:
            next_draft = ListingDraft.model_validate(candidate)
        except ValidationError as exc:
            raise InputValidationError(
                "; ".join(issue["msg"] for issue in exc.errors()), field="draft"
            ) from exc

        self._state.save_error = None
        self._state.draft = next_draft
        self._persist_draft(self._state)
        return next_draft

    def reset_draft(self) -> None:
        self._state.save_error = None
        self._state.draft = None
        self._state.draft_image_url = None
        self._persist_draft(self._state)

    def formatted_listing(self) -> str | None:
        if self._state.draft is None:
            return None
        return build_formatted_listing(self._state.draft)

    async def save(self) -> PersistedListing | None:
        """Store the current draft through the relational store collaborator."""
        state = self._state
        draft = state.draft
        if draft is None:
            return None

        state.save_error = None
        if state.user_id is None:
            state.save_error = "You must be signed in to save a listing."
            return None

        try:
            session = await self._require_session()
            listing = await self._save_listing.execute(
                SaveListingDraftInput(
                    user_id=session.user_id,
                    draft=draft,
                    image_url=state.draft_image_url,
                )
            )
        except SessionInvalidatedError as exc:
            await self._handle_session_invalidated(state, exc)
            return None
        except ListingPersistenceError as exc:
            logger.error("listing_save_failed", user_id=state.user_id, error=str(exc))
            state.save_error = str(exc) or "Failed to save listing."
            return None

        return listing

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _require_session(self) -> Session:
        session = await self._session_provider.get_current_session()
        if session is None:
            raise SessionInvalidatedError(SessionFailureReason.MISSING_SESSION)

        result = self._session_validator.validate(session.access_token)
        if not result.valid and result.reason == SessionFailureReason.EXPIRED:
            refreshed = await self._session_provider.refresh_session()
            if refreshed is not None:
                session = refreshed
                result = self._session_validator.validate(refreshed.access_token)

        if not result.valid:
            raise SessionInvalidatedError(result.reason or SessionFailureReason.MALFORMED)
        return session

    async def _handle_session_invalidated(
        self, state: OrchestratorState, exc: SessionInvalidatedError
    ) -> None:
        state.last_error = exc
        if not state.status.is_settled:
            self._transition(state, GenerationState.FAILED)
        if state is not self._state:
            # The user changed while the request was running; their session is not ours to end
            logger.info("stale_session_failure_ignored", reason=exc.reason.value, user_id=state.user_id)
            return

        logger.warning(
            "session_invalidated",
            reason=exc.reason.value,
            user_id=state.user_id,
            has_draft=state.draft is not None,
        )
        # Draft stays in memory and in local storage for after the re-login
        self._persist_draft(state)
        try:
            await self._session_provider.sign_out()
        finally:
            await self._navigator.redirect_to_login(SESSION_EXPIRED_NOTICE)

    def _fail(self, state: OrchestratorState, exc: Exception, message: str) -> None:
        state.submit_error = message or "Listing generation failed."
        state.last_error = exc
        if not state.status.is_settled:
            self._transition(state, GenerationState.FAILED)
        logger.warning(
            "generation_failed",
            error_type=type(exc).__name__,
            message=message,
            retryable=getattr(exc, "retryable", False),
            user_id=state.user_id,
        )

    def _drop_stale(self, state: OrchestratorState) -> None:
        logger.info("generation_result_dropped", user_id=state.user_id, status=state.status.value)

    def _persist_draft(self, state: OrchestratorState) -> None:
        user_id = state.user_id
        if user_id is None:
            return
        if state.draft is None:
            self._draft_storage.clear(user_id)
            return
        self._draft_storage.save(user_id, StoredDraft(draft=state.draft, image_url=state.draft_image_url))

    def _begin_flight(self, state: OrchestratorState) -> None:
        state.in_flight = True
        self._progress.start()

    def _end_flight(self, state: OrchestratorState) -> None:
        state.in_flight = False
        # A user switch already stopped the overlay for a stale attempt
        if state is self._state:
            self._progress.stop()

    def _transition(self, state: OrchestratorState, to_state: GenerationState) -> None:
        self._state_machine.validate_transition(state.status, to_state)
        state.status = to_state
