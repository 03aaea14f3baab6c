"""Domain exceptions shared by every layer."""


class LexisError(Exception):
    """Base class for all Lexis errors."""


class StoreUnavailable(LexisError):
    """The external store could not be reached. Safe to retry the whole operation."""


class NotFound(LexisError):
    """A scope, level, course or card does not exist."""


class SessionFinished(LexisError):
    """The review session queue is empty; no card can be flipped or graded."""
