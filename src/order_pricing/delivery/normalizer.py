"""
Address Normalizer - Canonical city tokens for same-city detection.

Pure functions, no I/O.
"""
from dataclasses import dataclass
from typing import Optional

ADMIN_SUFFIXES = (
    " district",
    " taluk",
    " taluka",
    " city",
    " municipality",
    " corporation",
    " rural",
    " urban",
)

CITY_ALIASES = {
    'tirupur': 'tirupur',
    'thirupur': 'tirupur',
    'tirpur': 'tirupur',
    'tiruppur': 'tirupur',
    'coimbatore': 'coimbatore',
    'kovai': 'coimbatore',
    'chennai': 'chennai',
    'madras': 'chennai',
    'bangalore': 'bangalore',
    'bengaluru': 'bangalore',
}


@dataclass(frozen=True)
class CanonicalCity:
    """A normalized city: `token` for comparisons, `display` for people."""
    token: str
    display: str

    def same_as(self, other: Optional['CanonicalCity']) -> bool:
        return other is not None and self.token == other.token


def _strip_suffixes(name: str) -> str:
    # Each suffix is stripped once, in table order
    for suffix in ADMIN_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)].rstrip()
    return name


class AddressNormalizer:
    """Canonicalizes free-text city names."""

    def __init__(self, aliases: Optional[dict[str, str]] = None):
        self.aliases = dict(CITY_ALIASES if aliases is None else aliases)

    def normalize(self, city_text: Optional[str]) -> Optional[CanonicalCity]:
        """Normalize a city name; None for empty or whitespace-only input."""
        if city_text is None:
            return None
        name = ' '.join(str(city_text).split()).lower()
        if not name:
            return None

        name = _strip_suffixes(name)
        if not name:
            return None
        token = self.aliases.get(name, name)
        display = ' '.join(word[:1].upper() + word[1:] for word in token.split(' '))
        return CanonicalCity(token=token, display=display)

    def same_city(self, a: Optional[str], b: Optional[str]) -> bool:
        city_a = self.normalize(a)
        return city_a is not None and city_a.same_as(self.normalize(b))
