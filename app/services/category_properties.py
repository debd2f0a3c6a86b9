"""Validate a post's ``category_properties`` against its category's schema."""

import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.core.exceptions import CategoryPropertiesException
from app.schemas.category import CategoryProperty, PropertyType

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


class PropertyValueError(ValueError):
    pass


def _coerce_text(value: Any, prop: CategoryProperty) -> str:
    if not isinstance(value, str):
        raise PropertyValueError("must be text")
    return value.strip()


def _coerce_number(value: Any, prop: CategoryProperty) -> float:
    # bool is an int subclass; True is not a thickness
    if isinstance(value, bool):
        raise PropertyValueError("must be a number")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise PropertyValueError("must be a number") from None
        if number.is_integer():
            number = int(number)
    else:
        raise PropertyValueError("must be a number")
    if isinstance(number, float) and not math.isfinite(number):
        raise PropertyValueError("must be a finite number")
    return number


def _coerce_boolean(value: Any, prop: CategoryProperty) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise PropertyValueError("must be a boolean")


def _coerce_select(value: Any, prop: CategoryProperty) -> str:
    if not isinstance(value, str) or value not in prop.options:
        raise PropertyValueError(f"must be one of: {', '.join(prop.options)}")
    return value


def _coerce_multiselect(value: Any, prop: CategoryProperty) -> List[str]:
    if isinstance(value, str):
        value = [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list):
        raise PropertyValueError("must be a list of options")
    invalid = [item for item in value if item not in prop.options]
    if invalid:
        raise PropertyValueError(
            f"contains invalid options {invalid}; allowed: {', '.join(prop.options)}"
        )
    # keep order, drop repeats
    return list(dict.fromkeys(value))


COERCERS: Dict[PropertyType, Callable[[Any, CategoryProperty], Any]] = {
    PropertyType.TEXT: _coerce_text,
    PropertyType.NUMBER: _coerce_number,
    PropertyType.BOOLEAN: _coerce_boolean,
    PropertyType.SELECT: _coerce_select,
    PropertyType.MULTISELECT: _coerce_multiselect,
}


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def validate_category_properties(
    definitions: Optional[Sequence[Any]],
    values: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Check ``values`` against the declared ``definitions`` of a category.

    Args:
        definitions: Category.properties, as dicts or CategoryProperty objects
        values: The post's category_properties map

    Returns:
        Normalized values (numbers parsed, booleans parsed, blanks dropped)

    Raises:
        CategoryPropertiesException: listing every offending property
    """
    declared = [
        d if isinstance(d, CategoryProperty) else CategoryProperty.model_validate(d)
        for d in (definitions or [])
    ]
    by_name = {prop.name: prop for prop in declared}
    values = values or {}

    errors: List[Dict[str, Any]] = []
    cleaned: Dict[str, Any] = {}

    for key, value in values.items():
        if key not in by_name:
            errors.append({
                "field": f"category_properties.{key}",
                "message": "Property is not declared by the category",
                "value": value,
            })

    for prop in declared:
        field = f"category_properties.{prop.name}"
        value = values.get(prop.name)
        if _is_blank(value):
            if prop.required:
                errors.append({"field": field, "message": "Property is required", "value": value})
            continue
        try:
            cleaned[prop.name] = COERCERS[prop.type](value, prop)
        except PropertyValueError as e:
            errors.append({"field": field, "message": f"{prop.name} {e}", "value": value})

    if errors:
        raise CategoryPropertiesException(errors)
    return cleaned
