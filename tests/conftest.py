import pytest

from src.domain.entities.listing_draft import ListingDraft
from tests.helpers import draft_dict


@pytest.fixture()
def draft() -> ListingDraft:
    return ListingDraft.model_validate(draft_dict())
