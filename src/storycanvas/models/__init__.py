"""Data models for StoryCanvas."""

from .scene import Scene, SceneDraft, SceneStatus, ShotType
from .session import AspectRatio, DEFAULT_ASPECT_RATIO, Session
from .project import ArchivedProject

__all__ = [
    "Scene",
    "SceneDraft",
    "SceneStatus",
    "ShotType",
    "AspectRatio",
    "DEFAULT_ASPECT_RATIO",
    "Session",
    "ArchivedProject",
]
