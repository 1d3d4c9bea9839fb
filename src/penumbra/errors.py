class PenumbraError(Exception):
    """Base error for Penumbra domain exceptions."""


class GenerationError(PenumbraError):
    """Raised when an input history event cannot be used for generation.

    The dungeon generator catches this per event and skips the offending record,
    so callers only see it when validating events themselves.
    """


class InvalidAction(PenumbraError):
    """Raised when a player action is rejected; the session state is left untouched."""


class StateCorruption(PenumbraError):
    """Raised when a loaded snapshot is internally inconsistent."""
