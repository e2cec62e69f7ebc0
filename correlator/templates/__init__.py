"""
Technique templates for supporting log generation.
"""

from .base import SlotContext, TechniqueTemplate, TemplateSlot
from .registry import (
    DEFAULT_TEMPLATE,
    GENERIC_NARRATIVE,
    NARRATIVES,
    TemplateRegistry,
    default_registry,
    narrative_for,
)

__all__ = [
    "SlotContext",
    "TechniqueTemplate",
    "TemplateSlot",
    "TemplateRegistry",
    "DEFAULT_TEMPLATE",
    "default_registry",
    "narrative_for",
    "NARRATIVES",
    "GENERIC_NARRATIVE",
]
