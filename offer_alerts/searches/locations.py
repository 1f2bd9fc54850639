"""Static city -> region -> country lookup used by location filters.

Only French cities are mapped; anything else resolves to ``UNKNOWN_REGION``.
"""

import unicodedata
from enum import Enum

UNKNOWN_REGION = "Autre"

FRENCH_REGIONS: dict[str, list[str]] = {
    "Île-de-France": [
        "Paris", "Boulogne-Billancourt", "Saint-Denis", "Versailles",
        "Nanterre", "Créteil", "Neuilly-sur-Seine", "La Défense",
    ],
    "Auvergne-Rhône-Alpes": [
        "Lyon", "Grenoble", "Saint-Étienne", "Clermont-Ferrand", "Annecy", "Villeurbanne",
    ],
    "Provence-Alpes-Côte d'Azur": [
        "Marseille", "Nice", "Toulon", "Aix-en-Provence", "Cannes", "Sophia-Antipolis",
    ],
    "Nouvelle-Aquitaine": ["Bordeaux", "Limoges", "Poitiers", "Pau", "La Rochelle"],
    "Occitanie": ["Toulouse", "Montpellier", "Nîmes", "Perpignan", "Béziers"],
    "Hauts-de-France": ["Lille", "Amiens", "Roubaix", "Tourcoing", "Dunkerque"],
    "Grand Est": ["Strasbourg", "Reims", "Metz", "Nancy", "Mulhouse"],
    "Pays de la Loire": ["Nantes", "Angers", "Le Mans", "Saint-Nazaire"],
    "Bretagne": ["Rennes", "Brest", "Quimper", "Lorient", "Vannes"],
    "Normandie": ["Rouen", "Le Havre", "Caen", "Cherbourg"],
    "Centre-Val de Loire": ["Orléans", "Tours", "Bourges", "Chartres"],
    "Bourgogne-Franche-Comté": ["Dijon", "Besançon", "Belfort", "Auxerre"],
    "Corse": ["Ajaccio", "Bastia"],
}

COUNTRIES = {
    "France", "Royaume-Uni", "Allemagne", "Suisse", "Belgique", "Luxembourg",
    "États-Unis", "Canada", "Singapour", "Émirats arabes unis",
}


class LocationKind(str, Enum):
    CITY = "city"
    REGION = "region"
    COUNTRY = "country"


def normalize(text: str) -> str:
    """Lower-case and strip accents so 'Île-de-France' == 'ile-de-france'."""
    decomposed = unicodedata.normalize("NFD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_CITY_TO_REGION = {
    normalize(city): region
    for region, cities in FRENCH_REGIONS.items()
    for city in cities
}
_REGIONS = {normalize(r) for r in FRENCH_REGIONS}
_COUNTRIES = {normalize(c) for c in COUNTRIES}


def region_from_city(city: str | None) -> str:
    """Resolve a city to its region, or UNKNOWN_REGION if it is not in the table."""
    if not city:
        return UNKNOWN_REGION
    return _CITY_TO_REGION.get(normalize(city), UNKNOWN_REGION)


def classify(location: str) -> LocationKind:
    """Decide whether a free-text location names a region, a country or a city."""
    key = normalize(location)
    if key in _REGIONS:
        return LocationKind.REGION
    if key in _COUNTRIES:
        return LocationKind.COUNTRY
    return LocationKind.CITY


def location_matches(location: str, offer_city: str, offer_country: str = "France") -> bool:
    """Check one filter location against an offer's city and country.

    Region filters go through the lookup table; city filters match by
    substring so 'Paris' accepts 'Paris 8e'.
    """
    kind = classify(location)
    wanted = normalize(location)
    if kind is LocationKind.REGION:
        return normalize(region_from_city(offer_city)) == wanted
    if kind is LocationKind.COUNTRY:
        return normalize(offer_country) == wanted
    return bool(offer_city) and wanted in normalize(offer_city)
