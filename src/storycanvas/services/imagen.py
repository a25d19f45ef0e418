"""Google Imagen API client wrapper via Vertex AI."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import google.auth
import google.auth.transport.requests
import requests

from ..config import Config, config as default_config
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ImageResult:
    """Result of an image generation call."""

    prompt: str
    data_uri: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.data_uri is not None


class ImagenClient:
    """Client wrapper for Google Imagen image generation via Vertex AI."""

    DEFAULT_LOCATION = "us-central1"
    DEFAULT_MODEL = "imagen-3.0-generate-001"
    SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Config] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the Imagen client.

        Args:
            project_id: Google Cloud project ID.
            location: GCP region for Vertex AI.
            model: Imagen model name.
            settings: Configuration to read defaults from.
            session: HTTP session to issue requests with.
        """
        settings = settings or default_config
        self._project_id = project_id or settings.google_cloud_project
        self._location = location or settings.google_cloud_location or self.DEFAULT_LOCATION
        self._model = model or settings.imagen_model or self.DEFAULT_MODEL
        self._http = session or requests.Session()

        if not self._project_id:
            raise ConfigurationError("GOOGLE_CLOUD_PROJECT not set")

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return (
            f"https://{self._location}-aiplatform.googleapis.com/v1/"
            f"projects/{self._project_id}/locations/{self._location}/"
            f"publishers/google/models/{self._model}:predict"
        )

    def _access_token(self) -> str:
        credentials, _ = google.auth.default(scopes=self.SCOPES)
        credentials.refresh(google.auth.transport.requests.Request())
        return credentials.token

    def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> ImageResult:
        """Generate an image from a text prompt.

        Args:
            prompt: Text description of the image to generate.
            aspect_ratio: Image aspect ratio ('16:9', '9:16', '1:1').

        Returns:
            ImageResult with a data URI on success, error_message otherwise.
        """
        result = ImageResult(
            prompt=prompt,
            created_at=datetime.now(),
            metadata={
                "aspect_ratio": aspect_ratio,
                "model": self._model,
            },
        )

        try:
            request_body = {
                "instances": [
                    {"prompt": prompt}
                ],
                "parameters": {
                    "sampleCount": 1,
                    "aspectRatio": aspect_ratio,
                },
            }

            headers = {
                "Authorization": f"Bearer {self._access_token()}",
                "Content-Type": "application/json",
            }

            logger.info(f"Generating image with Imagen: {prompt[:50]}...")
            response = self._http.post(self.endpoint, json=request_body, headers=headers)

            if response.status_code != 200:
                error_msg = f"{response.status_code}: {response.text[:500]}"
                logger.error(f"Imagen API error: {error_msg}")
                result.error_message = error_msg
                return result

            data = response.json()

            predictions = data.get("predictions", [])
            if not predictions:
                result.error_message = "No predictions in response"
                return result

            image_data = predictions[0].get("bytesBase64Encoded")
            if not image_data:
                result.error_message = "No image data in response"
                return result

            mime_type = predictions[0].get("mimeType") or "image/png"
            result.data_uri = f"data:{mime_type};base64,{image_data}"
            return result

        except Exception as e:
            logger.error(f"Image generation failed: {e}")
            result.error_message = str(e)
            return result
