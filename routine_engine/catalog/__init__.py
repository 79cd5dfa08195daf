"""
Catalog package for the Routine Engine.

pydantic schemas for the template catalog payload handed over by the
storage layer.
"""

from .schemas import (
    CatalogSchema,
    ConditionalKindSchema,
    ConditionalOptionSchema,
    ContextRuleSchema,
    HabitSchema,
    TemplateSchema,
    load_catalog,
)

__all__ = [
    "CatalogSchema",
    "ConditionalKindSchema",
    "ConditionalOptionSchema",
    "ContextRuleSchema",
    "HabitSchema",
    "TemplateSchema",
    "load_catalog",
]
