# errors.py

class LessonError(Exception):
    """Base class for lesson loading and lifecycle errors."""

class EmptySequenceError(LessonError):
    """No notes to build a lesson from."""

class NotLoadedError(LessonError):
    """start() called before a lesson was loaded."""

class AlreadyLoadedWhileRunningError(LessonError):
    """load() called while a lesson is running or paused."""
