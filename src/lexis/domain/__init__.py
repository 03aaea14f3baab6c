# Domain Package
from .errors import LexisError, NotFound, SessionFinished, StoreUnavailable
from .models import Card, CardMemoryState, Course, Grade, Level, Scope
from .ports import CardRepository, ProgressRepository

__all__ = [
    "Card",
    "CardMemoryState",
    "Course",
    "Grade",
    "Level",
    "Scope",
    "CardRepository",
    "ProgressRepository",
    "LexisError",
    "NotFound",
    "SessionFinished",
    "StoreUnavailable",
]
