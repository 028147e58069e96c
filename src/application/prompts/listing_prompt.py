LISTING_PROMPT = """
You generate marketplace listing drafts from either product text or a product image.

Return only data that fits the required JSON schema and avoid markdown.
Respond with a single JSON object with the keys title, description, bullet_points,
price_min and price_max.
Write concise, accurate copy with no fabricated details.
When an image is provided, only infer details that are visually evident.
Price range must be realistic and in USD.
""".strip()

IMAGE_MODE_INSTRUCTION = "Input mode: image. Generate listing details from the provided image only."


def build_user_text(text: str | None) -> str:
    if text is None:
        return IMAGE_MODE_INSTRUCTION
    return f"Input mode: text.\nProduct details: {text}"


# Structured-output schema sent with the request; mirrors ListingDraft.
LISTING_DRAFT_JSON_SCHEMA: dict = {  # type: ignore[type-arg]
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "bullet_points": {
            "type": "array",
            "minItems": 3,
            "maxItems": 6,
            "items": {"type": "string"},
        },
        "price_min": {"type": "number", "minimum": 0},
        "price_max": {"type": "number", "minimum": 0},
    },
    "required": ["title", "description", "bullet_points", "price_min", "price_max"],
}
