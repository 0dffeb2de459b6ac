import logging
import uuid

from .models import Recipe, RecipeSubmission
from .storage import RecipeRepository

logger = logging.getLogger(__name__)


class RecipeService:
    """Turns validated submissions into stored recipes."""

    def __init__(self, storage: RecipeRepository) -> None:
        self._storage = storage

    def create(self, submission: RecipeSubmission) -> Recipe:
        """Assign a fresh id to ``submission`` and persist it.

        The submission is trusted to be valid. Storage failures propagate
        unchanged; nothing is retried.
        """

        recipe = Recipe(
            id=str(uuid.uuid4()),
            title=submission.title,
            description=submission.description,
            ingredients=submission.ingredients,
            instructions=submission.instructions,
            prep_time_minutes=submission.prep_time_minutes,
            cook_time_minutes=submission.cook_time_minutes,
            servings=submission.servings,
        )
        stored = self._storage.add_recipe(recipe)
        logger.info("Created recipe %s (%r)", stored.id, stored.title)
        return stored


__all__ = ["RecipeService"]
