from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Ingredient:
    """A single ingredient line owned by a recipe."""

    name: str
    quantity: Number
    unit: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ingredient":
        return cls(name=data["name"], quantity=data["quantity"], unit=data["unit"])


@dataclass(frozen=True)
class RecipeSubmission:
    """A recipe submission that has passed validation."""

    title: str
    description: str
    ingredients: List[Ingredient]
    instructions: List[str]
    prep_time_minutes: int
    cook_time_minutes: int
    servings: int


@dataclass(frozen=True)
class Recipe:
    """Domain object representing a stored recipe."""

    id: str
    title: str
    description: str
    ingredients: List[Ingredient]
    instructions: List[str]
    prep_time_minutes: int
    cook_time_minutes: int
    servings: int
    created_at: Optional[datetime] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase representation sent over the wire."""

        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "prepTimeMinutes": self.prep_time_minutes,
            "cookTimeMinutes": self.cook_time_minutes,
            "servings": self.servings,
            "createdAt": _format_timestamp(self.created_at),
        }


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


__all__ = ["Ingredient", "Recipe", "RecipeSubmission"]
