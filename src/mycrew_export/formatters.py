from __future__ import annotations

import logging

import phonenumbers
from phonenumbers import NumberParseException

from .model import Location, primary_location

logger = logging.getLogger(__name__)

# ── Country → phone region ─────────────────────────────────────────────────────

_COUNTRY_REGIONS = {
    "France": "FR", "Belgique": "BE", "Belgium": "BE", "Suisse": "CH",
    "Switzerland": "CH", "Luxembourg": "LU", "Monaco": "MC",
    "Espagne": "ES", "Spain": "ES", "Italie": "IT", "Italy": "IT",
    "Portugal": "PT", "Allemagne": "DE", "Germany": "DE",
    "Royaume-Uni": "GB", "United Kingdom": "GB", "UK": "GB",
    "Irlande": "IE", "Ireland": "IE", "Pays-Bas": "NL", "Netherlands": "NL",
    "Canada": "CA", "États-Unis": "US", "United States": "US", "USA": "US",
    "Maroc": "MA", "Morocco": "MA", "Tunisie": "TN", "Tunisia": "TN",
}


def region_for_country(country: str | None) -> str | None:
    if not country:
        return None
    c = country.strip()
    if len(c) == 2 and c.isalpha():
        return c.upper()
    return _COUNTRY_REGIONS.get(c)


def infer_region(locations: list[Location], default_region: str | None = None) -> str | None:
    """Phone region from the primary location's country, else the default."""
    primary = primary_location(locations)
    region = region_for_country(primary.country) if primary else None
    return region or default_region


# ── Phone formatting ───────────────────────────────────────────────────────────

def _format_spaced(num: phonenumbers.PhoneNumber) -> str:
    """Pretty international form, e.g. +33 6 12 34 56 78."""
    intl = phonenumbers.format_number(num, phonenumbers.PhoneNumberFormat.INTERNATIONAL)
    out = intl.replace("-", " ").replace("(", "").replace(")", "")
    return " ".join(out.split())


def format_phone(raw: str, region: str | None = None) -> str:
    """Display form of a stored phone number.

    Numbers that cannot be parsed or validated are returned unchanged; the
    stored value is never rewritten.
    """
    if not raw or not raw.strip():
        return raw
    try:
        parsed = phonenumbers.parse(raw, region)
    except NumberParseException:
        logger.debug("Phone %r not parseable for region %s", raw, region)
        return raw
    if phonenumbers.is_possible_number(parsed) and phonenumbers.is_valid_number(parsed):
        return _format_spaced(parsed)
    return raw


def phone_key(raw: str | None) -> str:
    """Trailing national digits, so local and international forms compare equal."""
    digits = "".join(ch for ch in raw or "" if ch.isdigit())
    return digits[-9:] if len(digits) >= 9 else digits
