"""Slug derivation and category property validation."""

import pytest

from app.core.exceptions import CategoryPropertiesException
from app.services.category_properties import validate_category_properties
from app.utils.slug import slugify


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Ortopedik Matras", "ortopedik-matras"),
        ("  Memory Foam_Matras! ", "memory-foam-matras"),
        ("Kids -- Beds", "kids-beds"),
        ("Latex & Spring (2024)", "latex-spring-2024"),
        ("---edge---", "edge"),
        ("!!!", ""),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_slug_is_idempotent():
    slug = slugify("Bolalar Matrasi")
    assert slugify("Bolalar Matrasi") == slug
    assert slugify(slug) == slug


MATTRESS_PROPERTIES = [
    {"name": "firmness", "type": "select", "options": ["yumshoq", "o'rtacha", "qattiq"], "required": True},
    {"name": "thickness", "type": "number", "unit": "cm", "required": True},
    {"name": "cooling_technology", "type": "boolean"},
    {"name": "layers", "type": "multiselect", "options": ["latex", "foam", "coir"]},
    {"name": "note", "type": "text"},
]


def _fields(exc_info):
    return {e["field"] for e in exc_info.value.errors}


def test_valid_properties_are_normalized():
    cleaned = validate_category_properties(
        MATTRESS_PROPERTIES,
        {
            "firmness": "qattiq",
            "thickness": "20",
            "cooling_technology": "true",
            "layers": "latex, foam",
            "note": "  soft cover ",
        },
    )
    assert cleaned == {
        "firmness": "qattiq",
        "thickness": 20,
        "cooling_technology": True,
        "layers": ["latex", "foam"],
        "note": "soft cover",
    }


def test_optional_blank_values_are_dropped():
    cleaned = validate_category_properties(
        MATTRESS_PROPERTIES, {"firmness": "yumshoq", "thickness": 18.5, "note": ""}
    )
    assert cleaned == {"firmness": "yumshoq", "thickness": 18.5}


def test_missing_required_property():
    with pytest.raises(CategoryPropertiesException) as exc_info:
        validate_category_properties(MATTRESS_PROPERTIES, {"firmness": "qattiq"})
    assert _fields(exc_info) == {"category_properties.thickness"}
    assert exc_info.value.status_code == 400


def test_undeclared_property_rejected():
    with pytest.raises(CategoryPropertiesException) as exc_info:
        validate_category_properties(
            MATTRESS_PROPERTIES, {"firmness": "qattiq", "thickness": 20, "color": "blue"}
        )
    assert _fields(exc_info) == {"category_properties.color"}


def test_every_bad_value_is_reported():
    with pytest.raises(CategoryPropertiesException) as exc_info:
        validate_category_properties(
            MATTRESS_PROPERTIES,
            {
                "firmness": "medium",
                "thickness": "thick",
                "cooling_technology": "maybe",
                "layers": ["latex", "wool"],
                "note": 42,
            },
        )
    assert _fields(exc_info) == {
        "category_properties.firmness",
        "category_properties.thickness",
        "category_properties.cooling_technology",
        "category_properties.layers",
        "category_properties.note",
    }


def test_boolean_is_not_a_number():
    with pytest.raises(CategoryPropertiesException):
        validate_category_properties(MATTRESS_PROPERTIES, {"firmness": "qattiq", "thickness": True})


def test_no_declared_properties_accepts_empty_map():
    assert validate_category_properties([], {}) == {}
    assert validate_category_properties(None, None) == {}
