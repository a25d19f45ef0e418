"""Exception types raised by storycanvas."""


class StoryCanvasError(Exception):
    """Base class for storycanvas errors."""


class ConfigurationError(StoryCanvasError):
    """A required credential or setting is missing."""


class SessionBusyError(StoryCanvasError):
    """An operation was attempted while analysis or rendering is in flight."""


class PersistenceError(StoryCanvasError):
    """Stored state could not be read or written."""
