"""Mutation API: the only path through which application code changes local records."""

from .base import MutationService
from .grocery import GroceryMutations
from .households import HouseholdMutations
from .pantry import PantryMutations

__all__ = [
    "GroceryMutations",
    "HouseholdMutations",
    "MutationService",
    "PantryMutations",
]
