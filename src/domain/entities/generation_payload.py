from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    StringConstraints,
    TypeAdapter,
    field_validator,
)

MAX_TEXT_LENGTH = 5000

_http_url = TypeAdapter(HttpUrl)


class ImagePayload(BaseModel):
    """Generate from an already-uploaded image."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mode: Literal["image"] = "image"
    image_url: str = Field(alias="imageUrl")

    @field_validator("image_url")
    @classmethod
    def _must_be_http_url(cls, value: str) -> str:
        _http_url.validate_python(value)
        return value


class TextPayload(BaseModel):
    """Generate from a free-text product description."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["text"] = "text"
    text: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_TEXT_LENGTH)
    ]


GenerationPayload = Annotated[Union[ImagePayload, TextPayload], Field(discriminator="mode")]

_payload_adapter: TypeAdapter[GenerationPayload] = TypeAdapter(GenerationPayload)


def parse_generation_payload(raw: Any) -> ImagePayload | TextPayload:
    """Validate a wire payload. Raises pydantic.ValidationError."""
    return _payload_adapter.validate_python(raw)


def payload_to_wire(payload: ImagePayload | TextPayload) -> dict[str, Any]:
    return payload.model_dump(by_alias=True)
