"""Google Gemini API client wrapper."""

import base64
import logging
from datetime import datetime
from typing import Any, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..config import Config, config as default_config
from ..errors import ConfigurationError
from .imagen import ImageResult

logger = logging.getLogger(__name__)


def to_data_uri(data: bytes | str, mime_type: Optional[str] = None) -> str:
    """Encode inline image bytes as a directly displayable data URI."""
    if isinstance(data, bytes):
        payload = base64.b64encode(data).decode("ascii")
    else:
        payload = data
    return f"data:{mime_type or 'image/png'};base64,{payload}"


class GeminiClient:
    """Client wrapper for Gemini text and image generation.

    Every call is a single attempt; callers decide how to degrade.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
        settings: Optional[Config] = None,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key: Gemini API key. Defaults to GEMINI_API_KEY env var.
            text_model: Model for text/JSON generation.
            image_model: Model for image generation.
            settings: Configuration to read defaults from.
        """
        settings = settings or default_config
        self._api_key = api_key or settings.gemini_api_key
        if not self._api_key:
            raise ConfigurationError(
                "Gemini API key not provided. Set GEMINI_API_KEY env var."
            )

        self._client = genai.Client(api_key=self._api_key)
        self._text_model = text_model or settings.text_model
        self._image_model = image_model or settings.image_model

    @property
    def text_model(self) -> str:
        return self._text_model

    @property
    def image_model(self) -> str:
        return self._image_model

    async def generate_text(
        self,
        contents: Any,
        system_instruction: Optional[str] = None,
        response_schema: Optional[types.Schema] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Generate text, optionally constrained to a JSON schema.

        Args:
            contents: Prompt contents sent to the model.
            system_instruction: Optional system instruction.
            response_schema: When given, the model is asked for JSON matching it.
            temperature: Sampling temperature.

        Returns:
            The text of the response ("" when the model returned nothing).

        Raises:
            genai_errors.APIError: If the API request fails.
        """
        kwargs = {
            "system_instruction": system_instruction,
            "temperature": temperature,
        }
        if response_schema is not None:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_schema"] = response_schema

        logger.debug(f"Sending request to {self._text_model}")
        response = await self._client.aio.models.generate_content(
            model=self._text_model,
            contents=contents,
            config=types.GenerateContentConfig(**kwargs),
        )
        return response.text or ""

    async def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> ImageResult:
        """Generate an image from a text prompt.

        Scans the first candidate for an inline image part. Errors are
        captured on the result rather than raised.

        Args:
            prompt: Text description of the image to generate.
            aspect_ratio: Image aspect ratio ('16:9', '9:16', '1:1').

        Returns:
            ImageResult with a data URI on success.
        """
        result = ImageResult(
            prompt=prompt,
            created_at=datetime.now(),
            metadata={
                "aspect_ratio": aspect_ratio,
                "model": self._image_model,
            },
        )

        try:
            logger.info(f"Generating image with Gemini: {prompt[:50]}...")
            response = await self._client.aio.models.generate_content(
                model=self._image_model,
                contents=[prompt],
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
                ),
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini API error: {e}")
            result.error_message = str(e)
            return result
        except Exception as e:
            logger.error(f"Image generation failed: {e}")
            result.error_message = str(e)
            return result

        candidates = response.candidates or []
        parts = []
        if candidates and candidates[0].content:
            parts = candidates[0].content.parts or []

        for part in parts:
            if part.inline_data and part.inline_data.data:
                result.data_uri = to_data_uri(part.inline_data.data, part.inline_data.mime_type)
                return result

        result.error_message = "No image data in response"
        logger.warning(f"Gemini returned no image for: {prompt[:50]}...")
        return result
