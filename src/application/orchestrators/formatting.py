from src.domain.entities.listing_draft import ListingDraft


def _format_price(value: float) -> str:
    return str(int(value)) if value.is_integer() else f"{value:.2f}"


def build_formatted_listing(draft: ListingDraft) -> str:
    """Render a draft as plain text ready to paste into a marketplace form."""
    bullets = "\n".join(f"- {bullet.strip()}" for bullet in draft.bullet_points if bullet.strip())
    price_range = f"Price range: ${_format_price(draft.price_min)} - ${_format_price(draft.price_max)}"
    sections = [draft.title.strip(), bullets, draft.description.strip(), price_range]
    return "\n\n".join(section for section in sections if section)
