"""Composition root for the client-side listing generator."""
from src.application.interfaces.draft_store import DraftStore
from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.listing_repository import ListingRepository
from src.application.interfaces.navigator import Navigator
from src.application.orchestrators.draft_storage import DraftStorage
from src.application.orchestrators.listing_generator import ListingGeneratorOrchestrator
from src.application.services.session_validator import SessionValidator
from src.application.use_cases.save_listing_draft import SaveListingDraft
from src.infrastructure.external_services.generation_api_client import GenerationApiClient
from src.infrastructure.external_services.listing_api_client import ListingApiClient
from src.infrastructure.external_services.supabase_auth import SupabaseSessionProvider
from src.infrastructure.external_services.supabase_storage import SupabaseObjectStorage
from src.infrastructure.local_storage.json_file_draft_store import JsonFileDraftStore
from src.infrastructure.messaging.noop_publisher import NoOpEventPublisher
from src.infrastructure.navigation.callback_navigator import CallbackNavigator


def build_listing_generator(
    *,
    listing_repo: ListingRepository | None = None,
    session_provider: SupabaseSessionProvider | None = None,
    draft_store: DraftStore | None = None,
    navigator: Navigator | None = None,
    event_publisher: EventPublisher | None = None,
) -> ListingGeneratorOrchestrator:
    """Wire the orchestrator to the Supabase-backed collaborators from settings."""
    session_provider = session_provider or SupabaseSessionProvider()
    return ListingGeneratorOrchestrator(
        session_provider=session_provider,
        session_validator=SessionValidator(),
        generation_client=GenerationApiClient(),
        object_storage=SupabaseObjectStorage(session_provider),
        draft_storage=DraftStorage(draft_store or JsonFileDraftStore()),
        save_listing=SaveListingDraft(
            listing_repo or ListingApiClient(session_provider), event_publisher or NoOpEventPublisher()
        ),
        navigator=navigator or CallbackNavigator(),
    )
