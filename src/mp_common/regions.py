"""Region normalization for the controlled-item and VAT rules.

Countries are free text in user profiles ("AE", "UAE", "United Arab Emirates").
Everything that is not the home region is "ROW" (rest of world).
"""

from config.settings import settings

REST_OF_WORLD = "ROW"


def normalize_region(country: str | None) -> str:
    if country is None:
        return REST_OF_WORLD
    value = country.strip().upper()
    aliases = {a.upper() for a in settings.HOME_REGION_ALIASES} | {settings.HOME_REGION.upper()}
    return settings.HOME_REGION if value in aliases else REST_OF_WORLD


def is_home_region(country: str | None) -> bool:
    return normalize_region(country) == settings.HOME_REGION
