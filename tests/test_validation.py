from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from recipe_api.models import Ingredient
from recipe_api.validation import Violation, validate_submission


def make_payload(**overrides):
    payload = {
        "title": "Test Recipe",
        "description": "A delicious test recipe",
        "ingredients": [
            {"name": "Flour", "quantity": 2, "unit": "cups"},
            {"name": "Sugar", "quantity": 1, "unit": "cup"},
        ],
        "instructions": ["Mix ingredients", "Bake at 350°F"],
        "prepTimeMinutes": 15,
        "cookTimeMinutes": 30,
        "servings": 4,
    }
    payload.update(overrides)
    return payload


def messages_for(payload):
    return validate_submission(payload).messages


def test_valid_payload_produces_submission():
    result = validate_submission(make_payload())

    assert result.is_valid
    submission = result.submission
    assert submission.title == "Test Recipe"
    assert submission.ingredients == [
        Ingredient(name="Flour", quantity=2, unit="cups"),
        Ingredient(name="Sugar", quantity=1, unit="cup"),
    ]
    assert submission.instructions == ["Mix ingredients", "Bake at 350°F"]
    assert (submission.prep_time_minutes, submission.cook_time_minutes, submission.servings) == (15, 30, 4)


def test_ingredient_equality_is_structural():
    assert Ingredient("Salt", 1, "tsp") == Ingredient("Salt", 1, "tsp")
    assert Ingredient("Salt", 1, "tsp") != Ingredient("Salt", 2, "tsp")


@pytest.mark.parametrize(
    "title, valid",
    [("a", True), ("a" * 200, True), ("a" * 201, False), ("", False), (" ", True)],
)
def test_title_length_bounds(title, valid):
    assert validate_submission(make_payload(title=title)).is_valid is valid


def test_overlong_description_is_rejected_not_truncated():
    result = validate_submission(make_payload(description="b" * 501))

    assert result.submission is None
    assert result.violations == [
        Violation("description", "description must be shorter than or equal to 500 characters")
    ]


@pytest.mark.parametrize("quantity, valid", [(0.01, True), (0, False), (-1, False), (0.009, False)])
def test_quantity_minimum(quantity, valid):
    payload = make_payload(ingredients=[{"name": "Salt", "quantity": quantity, "unit": "tsp"}])

    assert validate_submission(payload).is_valid is valid


def test_ingredient_violation_is_attributed_to_ingredients():
    payload = make_payload(ingredients=[{"name": "Flour", "quantity": 0, "unit": "cups"}])

    assert validate_submission(payload).violations == [
        Violation("ingredients", "ingredients.0.quantity must not be less than 0.01")
    ]


def test_every_ingredient_is_checked():
    payload = make_payload(
        ingredients=[
            {"name": "", "quantity": 1, "unit": "cup"},
            {"name": "Milk", "quantity": 1},
            "eggs",
        ]
    )

    assert messages_for(payload) == [
        "ingredients.0.name should not be empty",
        "ingredients.1.unit is required",
        "ingredients.2 must be an object",
    ]


def test_unknown_ingredient_key_is_rejected():
    payload = make_payload(
        ingredients=[{"name": "Flour", "quantity": 2, "unit": "cups", "brand": "Acme"}]
    )

    assert validate_submission(payload).violations == [
        Violation("ingredients", "property ingredients.0.brand should not exist")
    ]


@pytest.mark.parametrize("field", ["prepTimeMinutes", "cookTimeMinutes", "servings"])
@pytest.mark.parametrize("value", [0, -5])
def test_non_positive_integers_are_rejected(field, value):
    assert messages_for(make_payload(**{field: value})) == [f"{field} must not be less than 1"]


@pytest.mark.parametrize("value", [1.5, "1.5", "ten", True, None, [1]])
def test_non_integer_values_are_rejected(value):
    assert messages_for(make_payload(servings=value)) == ["servings must be an integer number"]


def test_exact_numeric_coercion():
    payload = make_payload(
        prepTimeMinutes="20",
        cookTimeMinutes=45.0,
        ingredients=[{"name": "Cocoa", "quantity": "0.75", "unit": "cup"}],
    )

    submission = validate_submission(payload).submission

    assert submission.prep_time_minutes == 20
    assert submission.cook_time_minutes == 45
    assert isinstance(submission.cook_time_minutes, int)
    assert submission.ingredients[0].quantity == 0.75


@pytest.mark.parametrize("quantity", ["NaN", float("inf"), "1e400", False, "two"])
def test_non_numeric_quantity_is_rejected(quantity):
    payload = make_payload(ingredients=[{"name": "Salt", "quantity": quantity, "unit": "tsp"}])

    assert messages_for(payload) == ["ingredients.0.quantity must be a number"]


def test_instructions_must_be_non_empty_strings():
    payload = make_payload(instructions=["Mix", "", 3])

    assert messages_for(payload) == [
        "instructions.1 should not be empty",
        "instructions.2 must be a string",
    ]


def test_empty_arrays_are_rejected():
    result = validate_submission(make_payload(ingredients=[], instructions=[]))

    assert result.violations == [
        Violation("ingredients", "ingredients must contain at least 1 elements"),
        Violation("instructions", "instructions must contain at least 1 elements"),
    ]


def test_missing_fields_are_reported():
    result = validate_submission({"title": "Only a title"})

    assert [violation.field for violation in result.violations] == [
        "description",
        "ingredients",
        "instructions",
        "prepTimeMinutes",
        "cookTimeMinutes",
        "servings",
    ]
    assert result.messages[0] == "description is required"


def test_unknown_fields_are_reported_after_field_checks():
    result = validate_submission(make_payload(title="", unknownField="x", anotherUnknown=123))

    assert result.violations == [
        Violation("title", "title should not be empty"),
        Violation("unknownField", "property unknownField should not exist"),
        Violation("anotherUnknown", "property anotherUnknown should not exist"),
    ]


@pytest.mark.parametrize("payload", [None, [], "recipe", 42])
def test_non_object_body_is_rejected(payload):
    assert validate_submission(payload).violations == [
        Violation("body", "request body must be a JSON object")
    ]


def test_validation_is_repeatable():
    payload = make_payload(title="", servings=0, extra=True)

    assert validate_submission(payload) == validate_submission(payload)
    assert payload["servings"] == 0
