from enum import Enum


class GenerationMode(str, Enum):
    """Input a listing draft is generated from."""

    IMAGE = "image"
    TEXT = "text"
