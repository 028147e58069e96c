"""Local input checks. Nothing here touches the network."""
import re
from dataclasses import dataclass

from src.domain.entities.generation_payload import MAX_TEXT_LENGTH

MAX_IMAGE_SIZE_BYTES = 10 * 1024 * 1024
ACCEPTED_IMAGE_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/webp")

MIN_TEXT_WORDS = 4
MIN_TEXT_LENGTH = 20
MIN_MEANINGFUL_WORDS = 3

# Filler words that say nothing about the product itself
TEXT_MODE_STOP_WORDS = frozenset(
    {
        "a", "an", "and", "any", "for", "from", "good", "great", "have", "in", "is",
        "it", "my", "nice", "on", "or", "product", "sale", "sell", "selling", "some",
        "stuff", "the", "this", "to", "used", "with",
    }
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class ImageFile:
    """An image picked by the user, not yet uploaded."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _is_meaningful(word: str) -> bool:
    normalized = _NON_ALNUM.sub("", word.lower())
    return len(normalized) > 2 and normalized not in TEXT_MODE_STOP_WORDS


def validate_text_input(value: str) -> str | None:
    """Return a user-facing error message, or None when the description is specific enough."""
    trimmed = value.strip()
    if not trimmed:
        return "Enter product details to continue."

    if len(trimmed) > MAX_TEXT_LENGTH:
        return f"Keep product details under {MAX_TEXT_LENGTH} characters."

    words = trimmed.split()
    if len(words) < MIN_TEXT_WORDS or len(trimmed) < MIN_TEXT_LENGTH:
        return "Add specific details like brand, model, condition, and accessories."

    if sum(1 for word in words if _is_meaningful(word)) < MIN_MEANINGFUL_WORDS:
        return "Input is too vague. Include concrete product details before generating."

    return None


def validate_image_file(file: ImageFile | None, max_size_bytes: int = MAX_IMAGE_SIZE_BYTES) -> str | None:
    """Return a user-facing error message, or None when the image can be uploaded."""
    if file is None:
        return "Select an image to continue."

    if file.content_type not in ACCEPTED_IMAGE_TYPES:
        return "Use a JPG, PNG, or WEBP image."

    if file.size > max_size_bytes:
        return "Image must be 10MB or smaller."

    return None
