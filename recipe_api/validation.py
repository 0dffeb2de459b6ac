"""Validation of raw recipe submissions.

Every accepted object shape is described by a table of :class:`FieldRule`
entries. :func:`validate_submission` walks the recipe table once, collecting
every violation before it returns, and rejects keys that are not listed in
the table. Ingredients are validated by walking their own table the same way.

Checks coerce values only when the conversion is exact (``"15"`` becomes
``15``, ``5.0`` becomes ``5``); text is never stripped or truncated.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .models import Ingredient, RecipeSubmission

Check = Callable[[str, Any], Tuple[Any, List[str]]]

_MISSING = object()
_INTEGER_TEXT = re.compile(r"[+-]?\d+")
_NUMBER_TEXT = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class Violation:
    """A single reason a submission was rejected."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ValidationResult:
    submission: Optional[RecipeSubmission] = None
    violations: List[Violation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> List[str]:
        return [violation.message for violation in self.violations]


@dataclass(frozen=True)
class FieldRule:
    name: str
    check: Check


def text(max_length: Optional[int] = None) -> Check:
    """Non-empty string, optionally bounded in length."""

    def check(path: str, value: Any) -> Tuple[Any, List[str]]:
        if not isinstance(value, str):
            return value, [f"{path} must be a string"]
        if not value:
            return value, [f"{path} should not be empty"]
        if max_length is not None and len(value) > max_length:
            return value, [f"{path} must be shorter than or equal to {max_length} characters"]
        return value, []

    return check


def integer(minimum: int) -> Check:
    def check(path: str, value: Any) -> Tuple[Any, List[str]]:
        coerced = _to_int(value)
        if coerced is None:
            return value, [f"{path} must be an integer number"]
        if coerced < minimum:
            return coerced, [f"{path} must not be less than {minimum}"]
        return coerced, []

    return check


def number(minimum: float) -> Check:
    def check(path: str, value: Any) -> Tuple[Any, List[str]]:
        coerced = _to_number(value)
        if coerced is None:
            return value, [f"{path} must be a number"]
        if coerced < minimum:
            return coerced, [f"{path} must not be less than {minimum}"]
        return coerced, []

    return check


def array(item: Check, min_items: int = 1) -> Check:
    """JSON array whose elements are each checked with ``item``."""

    def check(path: str, value: Any) -> Tuple[Any, List[str]]:
        if not isinstance(value, list):
            return value, [f"{path} must be an array"]

        errors: List[str] = []
        if len(value) < min_items:
            errors.append(f"{path} must contain at least {min_items} elements")

        items = []
        for index, element in enumerate(value):
            coerced, element_errors = item(f"{path}.{index}", element)
            items.append(coerced)
            errors.extend(element_errors)
        return items, errors

    return check


def nested(rules: Sequence[FieldRule], build: Callable[[Dict[str, Any]], Any]) -> Check:
    """JSON object validated against its own rule table."""

    def check(path: str, value: Any) -> Tuple[Any, List[str]]:
        if not isinstance(value, dict):
            return value, [f"{path} must be an object"]

        values, errors = _walk(rules, value, prefix=f"{path}.")
        if errors:
            return value, [message for _, message in errors]
        return build(values), []

    return check


INGREDIENT_RULES: Tuple[FieldRule, ...] = (
    FieldRule("name", text()),
    FieldRule("quantity", number(minimum=0.01)),
    FieldRule("unit", text()),
)

RECIPE_RULES: Tuple[FieldRule, ...] = (
    FieldRule("title", text(max_length=200)),
    FieldRule("description", text(max_length=500)),
    FieldRule("ingredients", array(nested(INGREDIENT_RULES, Ingredient.from_dict))),
    FieldRule("instructions", array(text())),
    FieldRule("prepTimeMinutes", integer(minimum=1)),
    FieldRule("cookTimeMinutes", integer(minimum=1)),
    FieldRule("servings", integer(minimum=1)),
)


def validate_submission(payload: Any) -> ValidationResult:
    """Validate a decoded JSON body against :data:`RECIPE_RULES`.

    Returns a result holding either the normalized submission or every
    violation found, in rule order followed by unknown keys in input order.
    """

    if not isinstance(payload, dict):
        return ValidationResult(
            violations=[Violation("body", "request body must be a JSON object")]
        )

    values, errors = _walk(RECIPE_RULES, payload)
    if errors:
        return ValidationResult(
            violations=[Violation(name, message) for name, message in errors]
        )

    submission = RecipeSubmission(
        title=values["title"],
        description=values["description"],
        ingredients=values["ingredients"],
        instructions=values["instructions"],
        prep_time_minutes=values["prepTimeMinutes"],
        cook_time_minutes=values["cookTimeMinutes"],
        servings=values["servings"],
    )
    return ValidationResult(submission=submission)


def _walk(
    rules: Sequence[FieldRule], data: Dict[str, Any], prefix: str = ""
) -> Tuple[Dict[str, Any], List[Tuple[str, str]]]:
    values: Dict[str, Any] = {}
    errors: List[Tuple[str, str]] = []

    for rule in rules:
        path = prefix + rule.name
        raw = data.get(rule.name, _MISSING)
        if raw is _MISSING:
            errors.append((rule.name, f"{path} is required"))
            continue
        value, messages = rule.check(path, raw)
        values[rule.name] = value
        errors.extend((rule.name, message) for message in messages)

    known = {rule.name for rule in rules}
    for key in data:
        if key not in known:
            errors.append((str(key), f"property {prefix}{key} should not exist"))

    return values, errors


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_TEXT.fullmatch(value):
        return int(value)
    return None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and _NUMBER_TEXT.fullmatch(value):
        value = float(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


__all__ = [
    "FieldRule",
    "INGREDIENT_RULES",
    "RECIPE_RULES",
    "ValidationResult",
    "Violation",
    "validate_submission",
]
