"""Step input validation: pydantic schemas -> domain ValidationError."""

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from secondchance.core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def violations_from(exc: PydanticValidationError) -> list[dict[str, str]]:
    """One ``{field, message}`` entry per violated field, in pydantic's order."""
    violations = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        violations.append({"field": field, "message": message})
    return violations


def validate_step(model: type[ModelT], data: Any) -> ModelT:
    """Validate a step payload before anything is persisted.

    Args:
        model: Pydantic schema for the step
        data: Raw payload (usually the JSON body)

    Returns:
        Validated model instance

    Raises:
        ValidationError: Listing every violated field
    """
    if not isinstance(data, dict):
        raise ValidationError([{"field": "__root__", "message": "Expected a JSON object"}])
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(violations_from(exc)) from exc
