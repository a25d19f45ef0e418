"""Scene data model."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class ShotType(str, Enum):
    """Shot classification."""
    MAIN = "main"
    B_ROLL = "b-roll"


class SceneStatus(str, Enum):
    """Scene lifecycle status."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SceneStatus.COMPLETED, SceneStatus.FAILED)


class SceneDraft(BaseModel):
    """One scene descriptor as returned by story decomposition."""

    text: str = Field(..., description="The specific snippet from the original story")
    prompt: str = Field(..., description="Image prompt starting with the character genome")
    motion_prompt: str = Field(..., alias="motionPrompt", description="Camera movement instructions")
    shot_type: ShotType = Field(..., alias="shotType", description="'main' or 'b-roll'")

    class Config:
        """Pydantic config."""
        populate_by_name = True


class Scene(BaseModel):
    """Represents a single illustrated scene."""

    id: str = Field(..., description="Unique scene identifier")
    original_text: str = Field(..., alias="originalText", description="Source story excerpt")
    image_prompt: str = Field(..., alias="imagePrompt", description="Image generation prompt")
    motion_prompt: str = Field("", alias="motionPrompt", description="Camera motion direction")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Data URI or URL of the rendered image")
    shot_type: ShotType = Field(ShotType.MAIN, alias="shotType", description="Shot classification")
    status: SceneStatus = Field(default=SceneStatus.PENDING, description="Lifecycle status")

    class Config:
        """Pydantic config."""
        frozen = False
        populate_by_name = True

    @classmethod
    def from_draft(cls, draft: SceneDraft, index: int, stamp: int) -> "Scene":
        """Build a pending scene from a decomposition item."""
        return cls(
            id=f"scene-{index}-{stamp}",
            original_text=draft.text,
            image_prompt=draft.prompt,
            motion_prompt=draft.motion_prompt,
            shot_type=draft.shot_type,
        )
