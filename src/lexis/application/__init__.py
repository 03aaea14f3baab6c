# Application Package
from .due_selector import DueSetSelector
from .recorder import ReviewRecorder
from .scheduler import next_state, preview
from .session import ReviewOutcome, ReviewSession

__all__ = [
    "DueSetSelector",
    "ReviewRecorder",
    "ReviewOutcome",
    "ReviewSession",
    "next_state",
    "preview",
]
