"""
Listing draft schema.

The same model validates AI output on the backend and drafts rehydrated from
local storage on the client, so both sides agree on what a usable draft is.
"""
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic_core import PydanticCustomError

PRICE_RANGE_ERROR = "price_range"

DraftTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=120)]
DraftDescription = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=20, max_length=1200)
]
BulletPoint = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=180)]
Price = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class ListingDraft(BaseModel):
    """An unsaved marketplace listing pending user review."""

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    title: DraftTitle
    description: DraftDescription
    bullet_points: list[BulletPoint] = Field(min_length=3, max_length=6)
    price_min: Price
    price_max: Price

    @model_validator(mode="after")
    def _check_price_range(self) -> "ListingDraft":
        if self.price_max < self.price_min:
            raise PydanticCustomError(
                PRICE_RANGE_ERROR,
                "price_max ({price_max}) must not be lower than price_min ({price_min})",
                {"price_min": self.price_min, "price_max": self.price_max},
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class StoredDraft(BaseModel):
    """Per-user local storage record: the draft plus the image it was generated from."""

    model_config = ConfigDict(frozen=True)

    draft: ListingDraft
    image_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_draft(cls, data: Any) -> Any:
        # Older clients stored the draft object itself, without the wrapper.
        if isinstance(data, dict) and "draft" not in data and "title" in data:
            return {"draft": data, "image_url": None}
        return data
