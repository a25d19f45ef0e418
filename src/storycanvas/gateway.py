"""AI gateway: decomposition and rendering against the external model."""

import asyncio
import logging
from typing import Optional, Protocol

from .agents import DecomposeInput, StoryDecomposer
from .config import Config, config as default_config
from .errors import ConfigurationError
from .models import AspectRatio, SceneDraft
from .services import GeminiClient, ImageResult, ImagenClient

logger = logging.getLogger(__name__)


class Gateway(Protocol):
    """What the orchestrator needs from the AI backend."""

    async def decompose(self, story: str, style: str = "") -> list[SceneDraft]:
        ...

    async def render_image(self, prompt: str, aspect_ratio: AspectRatio | str) -> Optional[str]:
        ...


class AIGateway:
    """Fail-soft adapter over the Gemini (and optionally Imagen) clients.

    Neither operation raises: decomposition failures yield an empty list and
    render failures yield None. Each call is a single attempt.
    """

    def __init__(
        self,
        settings: Optional[Config] = None,
        client: Optional[GeminiClient] = None,
        imagen_client: Optional[ImagenClient] = None,
    ) -> None:
        self._settings = settings or default_config
        self._client = client
        self._imagen = imagen_client
        self._config_error: Optional[ConfigurationError] = None

        try:
            if self._client is None:
                self._settings.validate_required()
                self._client = GeminiClient(settings=self._settings)
            if self._settings.image_backend == "imagen" and self._imagen is None:
                self._imagen = ImagenClient(settings=self._settings)
        except ConfigurationError as e:
            logger.debug(f"AI gateway is not configured: {e}")
            self._config_error = e

        self._decomposer = StoryDecomposer(self._client) if self._client else None

    @property
    def configured(self) -> bool:
        return self._config_error is None

    def check_configuration(self) -> None:
        """Raise the configuration error found at startup, if any."""
        if self._config_error is not None:
            raise self._config_error

    async def decompose(self, story: str, style: str = "") -> list[SceneDraft]:
        """Split a story into ordered scene drafts.

        Returns:
            Drafts in model order, or [] on any failure.
        """
        if self._decomposer is None or not self.configured:
            logger.error(f"Decomposition skipped: {self._config_error}")
            return []

        try:
            return await self._decomposer.run(DecomposeInput(story=story, style=style))
        except Exception as e:
            logger.error(f"Story analysis failed: {e}")
            return []

    async def render_image(self, prompt: str, aspect_ratio: AspectRatio | str) -> Optional[str]:
        """Render one scene image.

        Returns:
            A data URI for the image, or None when no image was obtained.
        """
        if not self.configured:
            logger.error(f"Render skipped: {self._config_error}")
            return None

        ratio = aspect_ratio.value if isinstance(aspect_ratio, AspectRatio) else str(aspect_ratio)

        try:
            if self._imagen is not None:
                result: ImageResult = await asyncio.to_thread(
                    self._imagen.generate_image, prompt, ratio
                )
            else:
                result = await self._client.generate_image(prompt, ratio)
        except Exception as e:
            logger.error(f"Visual generation failed: {e}")
            return None

        if not result.ok:
            logger.warning(f"No image obtained: {result.error_message}")
            return None
        return result.data_uri
