"""External service integrations."""

from .imagen import ImageResult, ImagenClient
from .gemini import GeminiClient, to_data_uri

__all__ = [
    "GeminiClient",
    "ImagenClient",
    "ImageResult",
    "to_data_uri",
]
