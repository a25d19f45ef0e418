"""Archived project model."""

import time
import uuid
from typing import List
from pydantic import BaseModel, Field

from .scene import Scene
from .session import AspectRatio, DEFAULT_ASPECT_RATIO, Session


class ArchivedProject(BaseModel):
    """Frozen snapshot of a completed generation run."""

    id: str = Field(..., description="Project identifier")
    timestamp: int = Field(..., description="Creation time, epoch milliseconds")
    story: str = Field("", description="Story text")
    style: str = Field("", description="Style directive")
    aspect_ratio: AspectRatio = Field(DEFAULT_ASPECT_RATIO, alias="aspectRatio", description="Image aspect ratio")
    scenes: List[Scene] = Field(default_factory=list, description="Scenes at archive time")

    class Config:
        """Pydantic config."""
        populate_by_name = True

    @classmethod
    def from_session(cls, session: Session) -> "ArchivedProject":
        """Snapshot a session. Scenes are deep-copied."""
        now = int(time.time() * 1000)
        return cls(
            id=f"proj-{now}-{uuid.uuid4().hex[:6]}",
            timestamp=now,
            story=session.original_story,
            style=session.style_input,
            aspect_ratio=session.aspect_ratio,
            scenes=[scene.model_copy(deep=True) for scene in session.scenes],
        )

    def to_session(self) -> Session:
        return Session(
            original_story=self.story,
            style_input=self.style,
            aspect_ratio=self.aspect_ratio,
            scenes=[scene.model_copy(deep=True) for scene in self.scenes],
        )
