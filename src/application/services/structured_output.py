import json
import re
from typing import Any

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def parse_structured_json_text(text: str) -> Any | None:
    """Parse model output as JSON, falling back to the first fenced code block."""
    try:
        return json.loads(text)
    except ValueError:
        pass

    match = _FENCED_JSON.search(text)
    if match is None:
        return None
    try:
        return json.loads(match.group(1))
    except ValueError:
        return None
