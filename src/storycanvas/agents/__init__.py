"""AI agents for story decomposition."""

from .base import BaseAgent
from .decomposer import DecomposeInput, StoryDecomposer

__all__ = ["BaseAgent", "DecomposeInput", "StoryDecomposer"]
