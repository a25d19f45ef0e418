"""Configuration management."""

import os
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables
load_dotenv()


class Config(BaseModel):
    """Application configuration."""

    # API Keys
    gemini_api_key: str = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", ""),
        description="Gemini API key"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID (Imagen backend only)"
    )
    google_cloud_location: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        description="Vertex AI region (Imagen backend only)"
    )

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("STORYCANVAS_WORKSPACE", ".")),
        description="Workspace directory"
    )

    # Model settings
    text_model: str = Field(
        default_factory=lambda: os.getenv("STORYCANVAS_TEXT_MODEL", "gemini-2.5-flash"),
        description="Model used for story decomposition"
    )
    image_model: str = Field(
        default_factory=lambda: os.getenv("STORYCANVAS_IMAGE_MODEL", "gemini-2.5-flash-image"),
        description="Model used for scene rendering"
    )
    image_backend: str = Field(
        default_factory=lambda: os.getenv("STORYCANVAS_IMAGE_BACKEND", "gemini"),
        description="Image backend: 'gemini' or 'imagen'"
    )
    imagen_model: str = Field(
        default_factory=lambda: os.getenv("STORYCANVAS_IMAGEN_MODEL", "imagen-3.0-generate-001"),
        description="Imagen model name (Imagen backend only)"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def storage_dir(self) -> Path:
        """Directory holding the persisted session and archive records."""
        return self.workspace / ".storycanvas"

    def validate_required(self) -> None:
        """Validate that required credentials are set.

        Raises:
            ConfigurationError: If the credentials for the selected backends are missing.
        """
        if not self.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY not set")

        if self.image_backend not in ("gemini", "imagen"):
            raise ConfigurationError(
                f"STORYCANVAS_IMAGE_BACKEND must be 'gemini' or 'imagen'. "
                f"Got: {self.image_backend}"
            )

        if self.image_backend == "imagen":
            self.validate_imagen_required()

    def validate_imagen_required(self) -> None:
        """Validate that Imagen / Google Cloud settings are set."""
        if not self.google_cloud_project:
            raise ConfigurationError(
                "Missing required Imagen configuration: GOOGLE_CLOUD_PROJECT. "
                "Set the corresponding environment variable."
            )


# Global config instance
config = Config()
