from .user import User
from .connection import Connection
from .activity import NutritionLog, PersonalBest, Workout, WorkoutAssignment, WorkoutHistory
from .ledger import LedgerEntry

__all__ = [
    "User",
    "Connection",
    "Workout",
    "WorkoutAssignment",
    "WorkoutHistory",
    "PersonalBest",
    "NutritionLog",
    "LedgerEntry",
]
