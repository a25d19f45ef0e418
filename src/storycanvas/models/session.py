"""Live session model."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from .scene import Scene, SceneStatus


class AspectRatio(str, Enum):
    """Supported image aspect ratios."""
    WIDE = "16:9"
    TALL = "9:16"
    SQUARE = "1:1"


DEFAULT_ASPECT_RATIO = AspectRatio.WIDE


class Session(BaseModel):
    """The single live story session."""

    original_story: str = Field("", alias="originalStory", description="Story text")
    style_input: str = Field("", alias="styleInput", description="Optional style directive")
    aspect_ratio: AspectRatio = Field(DEFAULT_ASPECT_RATIO, alias="aspectRatio", description="Image aspect ratio")
    scenes: List[Scene] = Field(default_factory=list, description="Ordered scenes")
    is_analyzing: bool = Field(False, alias="isAnalyzing")
    is_generating: bool = Field(False, alias="isGenerating")

    class Config:
        """Pydantic config."""
        frozen = False
        populate_by_name = True

    @property
    def is_busy(self) -> bool:
        return self.is_analyzing or self.is_generating

    @property
    def is_empty(self) -> bool:
        return not self.scenes

    @property
    def all_settled(self) -> bool:
        """True when there are scenes and every one holds a terminal status."""
        return bool(self.scenes) and all(s.status.is_terminal for s in self.scenes)

    def find_scene(self, scene_id: str) -> Optional[Scene]:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    def count(self, status: SceneStatus) -> int:
        return sum(1 for s in self.scenes if s.status == status)

    def clear(self) -> None:
        """Drop story, style and scenes; restore default aspect ratio."""
        self.original_story = ""
        self.style_input = ""
        self.aspect_ratio = DEFAULT_ASPECT_RATIO
        self.scenes = []
        self.is_analyzing = False
        self.is_generating = False

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "Session":
        return cls.model_validate_json(data)
