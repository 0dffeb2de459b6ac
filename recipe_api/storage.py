from __future__ import annotations

from typing import Protocol

from .models import Recipe


class StorageError(RuntimeError):
    """Raised when the backing store cannot complete an operation."""


class RecipeRepository(Protocol):
    """Protocol describing the behaviour required by the ingest operation."""

    def add_recipe(self, recipe: Recipe) -> Recipe:
        """Persist a new recipe and return the stored instance.

        The store assigns ``created_at`` when the recipe does not carry one.
        Raises :class:`StorageError` when the write cannot be completed.
        """

    def get_recipe(self, recipe_id: str) -> Recipe:
        """Return a single recipe or raise :class:`KeyError` if missing."""


__all__ = ["RecipeRepository", "StorageError"]
