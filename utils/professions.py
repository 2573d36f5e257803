"""Profession names and level brackets."""

from __future__ import annotations

import re

# French ↔ English profession names, both directions
PROFESSION_MAPPING = {
    "Forge": "Blacksmithing",
    "Couture": "Tailoring",
    "Travail du cuir": "Leatherworking",
    "Ingénierie": "Engineering",
    "Alchimie": "Alchemy",
    "Enchantement": "Enchanting",
    "Joaillerie": "Jewelcrafting",
    "Calligraphie": "Inscription",
}
PROFESSION_MAPPING.update({en: fr for fr, en in list(PROFESSION_MAPPING.items())})

DEFAULT_PROFESSIONS = (
    "Forge",
    "Couture",
    "Travail du cuir",
    "Ingénierie",
    "Alchimie",
    "Enchantement",
    "Joaillerie",
    "Calligraphie",
)

_LEVEL_RE = re.compile(r"(\d+)")


def profession_variants(name: str) -> set[str]:
    """The name plus its translation when known."""
    variants = {name}
    if name in PROFESSION_MAPPING:
        variants.add(PROFESSION_MAPPING[name])
    return variants


def level_value(level_range) -> int | None:
    """Upper bound of a bracket: "300" → 300, "225-300" → 300, "1-75" → 75."""
    if level_range is None:
        return None
    if isinstance(level_range, (int, float)) and not isinstance(level_range, bool):
        return int(level_range)
    numbers = _LEVEL_RE.findall(str(level_range))
    if not numbers:
        return None
    return int(numbers[-1])
