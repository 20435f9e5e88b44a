"""Static D&D 5E rule tables.

Exports:
    RuleTables: Lookup facade over the per-class registry.
    ClassRules: One class's rule tables.
    normalize_class: Resolve free-form class identifiers.
"""

from __future__ import annotations

from dnd_progression.rules.registry import (
    FALLBACK_RULES,
    ClassRules,
    RuleTables,
    build_default_registry,
    normalize_class,
)


__all__ = [
    "RuleTables",
    "ClassRules",
    "FALLBACK_RULES",
    "build_default_registry",
    "normalize_class",
]
