"""StoryCanvas - turn stories into illustrated, directed scenes."""

__version__ = "0.1.0"
