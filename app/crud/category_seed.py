"""Built-in mattress taxonomy used by ``POST /categories/initialize-mattress``."""

from typing import Any, Dict, List

FIRMNESS_OPTIONS = ["yumshoq", "o'rtacha", "qattiq"]


def _firmness() -> Dict[str, Any]:
    return {"name": "firmness", "type": "select", "options": list(FIRMNESS_OPTIONS), "required": True}


def _thickness() -> Dict[str, Any]:
    return {"name": "thickness", "type": "number", "unit": "cm", "required": True}


DEFAULT_MATTRESS_CATEGORIES: List[Dict[str, Any]] = [
    {
        "name": "Ortopedik Matras",
        "description": "Orqa va bo'yin uchun maxsus ishlab chiqilgan matraslar",
        "sort_order": 1,
        "properties": [
            _firmness(),
            {
                "name": "material",
                "type": "select",
                "options": ["latex", "memory foam", "spring", "hybrid"],
                "required": True,
            },
            _thickness(),
            {"name": "support_zones", "type": "number", "required": False},
        ],
    },
    {
        "name": "Memory Foam Matras",
        "description": "Xotira ko'pikli matraslar, tanani qamrab oluvchi",
        "sort_order": 2,
        "properties": [
            {"name": "density", "type": "number", "unit": "kg/m³", "required": True},
            _firmness(),
            {"name": "cooling_technology", "type": "boolean", "required": False},
            _thickness(),
        ],
    },
    {
        "name": "Spring Matras",
        "description": "An'anaviy prujinali matraslar",
        "sort_order": 3,
        "properties": [
            {
                "name": "spring_type",
                "type": "select",
                "options": ["pocket", "bonnell", "continuous"],
                "required": True,
            },
            {"name": "spring_count", "type": "number", "required": True},
            _firmness(),
            {"name": "pillow_top", "type": "boolean", "required": False},
        ],
    },
    {
        "name": "Latex Matras",
        "description": "Tabiiy yoki sun'iy latex matraslar",
        "sort_order": 4,
        "properties": [
            {
                "name": "latex_type",
                "type": "select",
                "options": ["natural", "synthetic", "blended"],
                "required": True,
            },
            _firmness(),
            {"name": "perforations", "type": "boolean", "required": False},
            _thickness(),
        ],
    },
    {
        "name": "Bolalar Matrasi",
        "description": "Bolalar uchun maxsus ishlab chiqilgan matraslar",
        "sort_order": 5,
        "properties": [
            {
                "name": "age_group",
                "type": "select",
                "options": ["chaqaloq", "bolakay", "maktabgacha", "maktab"],
                "required": True,
            },
            {"name": "hypoallergenic", "type": "boolean", "required": True},
            {"name": "waterproof", "type": "boolean", "required": False},
            _firmness(),
        ],
    },
]
