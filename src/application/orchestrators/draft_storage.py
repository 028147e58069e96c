import json

import structlog
from pydantic import ValidationError

from src.application.interfaces.draft_store import DraftStore
from src.domain.entities.listing_draft import StoredDraft

logger = structlog.get_logger(__name__)

# Slot used before drafts were scoped per user
LEGACY_DRAFT_STORAGE_KEY = "listing-generator-draft"
DRAFT_STORAGE_KEY_PREFIX = "listing-generator-draft"


def draft_storage_key(user_id: str) -> str:
    return f"{DRAFT_STORAGE_KEY_PREFIX}:{user_id}"


class DraftStorage:
    """
    Per-user persistence of the unsaved draft in device-local storage.

    A draft left in the legacy unkeyed slot is moved into the first reading
    user's slot (copy, then delete) and never written there again.
    """

    def __init__(self, store: DraftStore) -> None:
        self._store = store

    def load(self, user_id: str) -> StoredDraft | None:
        key = draft_storage_key(user_id)
        raw = self._store.get_item(key)
        if raw is not None:
            return self._parse(raw, key)

        legacy_raw = self._store.get_item(LEGACY_DRAFT_STORAGE_KEY)
        if legacy_raw is None:
            return None

        stored = self._parse(legacy_raw, LEGACY_DRAFT_STORAGE_KEY)
        if stored is None:
            return None

        self._store.set_item(key, stored.model_dump_json())
        self._store.remove_item(LEGACY_DRAFT_STORAGE_KEY)
        logger.info("legacy_draft_migrated", user_id=user_id)
        return stored

    def save(self, user_id: str, stored: StoredDraft) -> None:
        self._store.set_item(draft_storage_key(user_id), stored.model_dump_json())

    def clear(self, user_id: str) -> None:
        self._store.remove_item(draft_storage_key(user_id))

    def _parse(self, raw: str, key: str) -> StoredDraft | None:
        try:
            return StoredDraft.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning("stored_draft_ignored", key=key)
            return None
