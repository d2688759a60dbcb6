from __future__ import annotations

import re
import unicodedata
from enum import Enum
from typing import Iterable


class EventCategory(str, Enum):
    music = "music"
    sports = "sports"
    technology = "technology"
    art = "art"
    food = "food"
    education = "education"
    social = "social"
    business = "business"
    health = "health"
    other = "other"


# Legacy keys stored by the web client, plus a few common spellings.
CATEGORY_ALIASES: dict[str, EventCategory] = {
    "musica": EventCategory.music,
    "concerts": EventCategory.music,
    "deportes": EventCategory.sports,
    "sport": EventCategory.sports,
    "tecnologia": EventCategory.technology,
    "tech": EventCategory.technology,
    "arte": EventCategory.art,
    "arts": EventCategory.art,
    "gastronomia": EventCategory.food,
    "gastronomy": EventCategory.food,
    "educacion": EventCategory.education,
    "negocios": EventCategory.business,
    "salud": EventCategory.health,
    "wellness": EventCategory.health,
    "otros": EventCategory.other,
    "others": EventCategory.other,
}

# Checked in declaration order; the first category with a hit wins.
CATEGORY_KEYWORDS: dict[EventCategory, tuple[str, ...]] = {
    EventCategory.music: (
        "concierto", "concert", "musica", "music", "banda", "band", "dj",
        "festival", "cancion", "album", "gig",
    ),
    EventCategory.sports: (
        "futbol", "football", "soccer", "basquet", "basketball", "tenis",
        "tennis", "maraton", "marathon", "deporte", "partido", "match", "torneo",
        "tournament",
    ),
    EventCategory.technology: (
        "tech", "programacion", "programming", "coding", "hackathon",
        "innovacion", "ai", "blockchain",
    ),
    EventCategory.art: (
        "exposicion", "exhibition", "museo", "museum", "pintura", "painting",
        "escultura", "galeria", "gallery", "arte", "art",
    ),
    EventCategory.food: (
        "comida", "food", "restaurante", "restaurant", "cata", "tasting",
        "gastronomico", "culinario", "culinary", "brunch",
    ),
    EventCategory.education: (
        "taller", "workshop", "curso", "course", "charla", "talk",
        "conferencia", "conference", "educativo", "aprendizaje", "lecture",
    ),
    EventCategory.social: (
        "fiesta", "party", "encuentro", "social", "networking", "meetup",
    ),
    EventCategory.business: (
        "negocios", "business", "empresa", "emprendimiento", "entrepreneurship",
        "inversion", "investment", "startup",
    ),
    EventCategory.health: (
        "yoga", "meditacion", "meditation", "salud", "health", "bienestar",
        "fitness", "wellness",
    ),
}

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _fold(text: str) -> str:
    """Lowercase and strip accents so 'Música' and 'musica' compare equal."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def normalize_category(value: object) -> EventCategory:
    """Map a caller-supplied category onto the closed enum.

    Raises ``ValueError`` for anything that is not a known category or alias.
    """
    if isinstance(value, EventCategory):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Event category must be a string, got {type(value).__name__}")
    key = _fold(value).strip().replace(" ", "_").replace("-", "_")
    try:
        return EventCategory(key)
    except ValueError:
        pass
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    raise ValueError(f"Unknown event category: {value!r}")


def infer_category(title: str, description: str = "", tags: Iterable[str] = ()) -> EventCategory:
    """Guess a category from free text for events created without one."""
    text = " ".join([title, description, *tags])
    tokens = set(_TOKEN_RE.findall(_fold(text)))
    for category, keywords in CATEGORY_KEYWORDS.items():
        if tokens.intersection(keywords):
            return category
    return EventCategory.other
